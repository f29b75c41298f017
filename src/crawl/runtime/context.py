"""
Execution context for the Crawl interpreter.

Holds the stack of local fact frames. The bottom frame belongs to the
top level; every procedure call pushes a copy of its caller's frame and
pops it on return, so a procedure can read its caller's local facts but
its own changes never reach the caller.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import error_call_depth
from ..facts import FactDatabase
from ..tokens import SourceSpan

DEFAULT_MAX_CALL_DEPTH = 64


@dataclass
class ExecutionContext:
    """
    Call-scoped interpreter state.

    Tracks:
    - Local fact frames, one per active call plus the top level
    - Names of the procedures being called, outermost first
    """
    frames: List[FactDatabase] = field(default_factory=lambda: [FactDatabase()])
    call_stack: List[str] = field(default_factory=list)
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH

    @property
    def local_facts(self) -> FactDatabase:
        """The innermost frame."""
        return self.frames[-1]

    @property
    def depth(self) -> int:
        """Number of procedure calls in progress."""
        return len(self.call_stack)

    @contextmanager
    def call_frame(self, name: str, span: Optional[SourceSpan] = None):
        """
        Context manager for the duration of one procedure call.

        Usage:
            with ctx.call_frame("greet"):
                # facts set here are gone once the block exits
                ctx.local_facts.set(fact)

        Raises:
            InterpreterError: If the call would exceed max_call_depth
        """
        if self.depth >= self.max_call_depth:
            raise error_call_depth(name, self.max_call_depth, span)

        self.frames.append(self.local_facts.copy())
        self.call_stack.append(name)
        try:
            yield self.local_facts
        finally:
            self.call_stack.pop()
            self.frames.pop()
