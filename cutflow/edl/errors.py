class EdlError(Exception):
    """Base class for caller-contract violations raised by the EDL compilers."""


class EmptySegmentsError(EdlError, ValueError):
    """Raised when the single-pass compiler is handed no keep segments."""


class DecisionParamsError(EdlError, ValueError):
    """Raised when a decision's params are missing fields its tool requires."""

    def __init__(self, decision_id: str, tool: str, detail: str):
        self.decision_id = decision_id
        self.tool = tool
        super().__init__(f"Invalid params for {tool} decision {decision_id}: {detail}")


class UnknownToolError(EdlError, ValueError):
    """Raised when a tool name does not belong to the decision kind."""
