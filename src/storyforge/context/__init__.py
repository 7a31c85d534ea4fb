"""Relevance-ranked story context.

Selects the story elements (characters, settings, plot points, chapters) most
relevant to a generation request, bounded by an element limit, and compacts
each to the fields a prompt needs.

Usage:
    from storyforge.context import ContextAssembler, SelectionRequest

    assembler = ContextAssembler(source)
    payload = assembler.build_context(SelectionRequest(project_id="p1"))
    print(payload.render())
"""

from storyforge.context.engine import ContextAssembler
from storyforge.context.models import ContextPayload, ElementKind, SelectionRequest
from storyforge.context.scoring import policy_constants, score

__all__ = [
    "ContextAssembler",
    "ContextPayload",
    "ElementKind",
    "SelectionRequest",
    "policy_constants",
    "score",
]
