"""Call-stack-aware attribution of transaction log lines.

The runtime writes one flat list of log lines per transaction, interleaving
the output of every program the transaction invoked (including nested CPIs).
Invocation and completion markers bracket each program's output, so a stack
of program ids rebuilt from those markers tells us who wrote every other line.

Marker formats:
    Program <id> invoke [<depth>]
    Program <id> success
    Program <id> failed: <reason>
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from twob_core.errors import AttributionInconsistency


logger = logging.getLogger(__name__)

_PROGRAM_PREFIX = "Program "
_INVOKE_MARKER = " invoke ["


def parse_invoked_program(line: str) -> Optional[str]:
    """Return the program id if ``line`` is an invocation marker."""
    if not line.startswith(_PROGRAM_PREFIX):
        return None
    program, sep, depth = line[len(_PROGRAM_PREFIX):].partition(_INVOKE_MARKER)
    if not sep or not program or " " in program or not depth.endswith("]"):
        return None
    return program


def is_program_completion(line: str) -> bool:
    """Check if ``line`` reports a program finishing (success or failure)."""
    if not line.startswith(_PROGRAM_PREFIX):
        return False
    program, _, status = line[len(_PROGRAM_PREFIX):].partition(" ")
    # "Program log: ..." / "Program data: ..." are payload lines, not markers
    if not program or program.endswith(":"):
        return False
    return status == "success" or status.startswith("failed:")


@dataclass(frozen=True)
class AttributedLine:
    """A log line together with the program that emitted it."""

    index: int
    program_id: Optional[str]
    text: str


@dataclass
class AttributionResult:
    """Outcome of walking one transaction's logs.

    Attributes:
        lines: Attributed lines in original order (target program only
            when produced by ``attribute``).
        inconsistencies: Completion markers seen with an empty stack.
        final_depth: Stack depth after the last line (0 for balanced logs).
    """

    lines: list[AttributedLine] = field(default_factory=list)
    inconsistencies: list[AttributionInconsistency] = field(default_factory=list)
    final_depth: int = 0

    @property
    def warnings(self) -> int:
        """Number of unmatched completion markers."""
        return len(self.inconsistencies)


class LogAttributionTracker:
    """Attributes log lines to the program on top of the call stack.

    Tolerates truncated or reordered logs: an unmatched completion marker is
    logged and skipped, and lines seen with an empty stack belong to nobody.

    Example:
        tracker = LogAttributionTracker(program_id)
        result = tracker.attribute(notification.logs, signature=sig, slot=slot)
        for line in result.lines:
            ...
    """

    def __init__(self, program_id: str):
        self.program_id = program_id

    def attribute_all(
        self,
        logs: Sequence[str],
        signature: str = "",
        slot: int = 0,
    ) -> AttributionResult:
        """Attribute every non-marker line to its emitting program.

        Lines seen while the stack is empty get ``program_id=None``.

        Args:
            logs: Ordered log lines of one transaction.
            signature: Transaction signature, for diagnostics.
            slot: Transaction slot, for diagnostics.

        Returns:
            AttributionResult holding every non-marker line.
        """
        result = AttributionResult()
        call_stack: list[str] = []

        for index, line in enumerate(logs):
            invoked = parse_invoked_program(line)
            if invoked is not None:
                call_stack.append(invoked)
                continue

            if is_program_completion(line):
                if call_stack:
                    call_stack.pop()
                else:
                    issue = AttributionInconsistency(line, signature, slot)
                    logger.warning(str(issue))
                    result.inconsistencies.append(issue)
                continue

            result.lines.append(
                AttributedLine(
                    index=index,
                    program_id=call_stack[-1] if call_stack else None,
                    text=line,
                )
            )

        result.final_depth = len(call_stack)
        return result

    def attribute(
        self,
        logs: Sequence[str],
        signature: str = "",
        slot: int = 0,
    ) -> AttributionResult:
        """Collect the lines emitted while the target program was on top.

        Args:
            logs: Ordered log lines of one transaction.
            signature: Transaction signature, for diagnostics.
            slot: Transaction slot, for diagnostics.

        Returns:
            AttributionResult with target lines in original order.
        """
        result = self.attribute_all(logs, signature, slot)
        result.lines = [line for line in result.lines if line.program_id == self.program_id]
        return result
