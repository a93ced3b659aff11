########## Layout Errors ##########
# Distinct failure kinds raised by the graph builder and the simulation handle.

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .types import Diagnostic, SimulationState


class LayoutError(Exception):
    """Base class for every controlled failure in the layout engine."""

    def as_payload(self) -> dict:
        """Return a JSON friendly description for API and UI callers."""

        return {"error": type(self).__name__, "message": str(self)}


class GraphBuildError(LayoutError):
    """Strict build refused the input because of validation diagnostics."""

    def __init__(self, diagnostics: List["Diagnostic"]) -> None:
        self.diagnostics = list(diagnostics)
        codes = ", ".join(sorted({item.code.value for item in self.diagnostics}))
        super().__init__(f"graph build failed with {len(self.diagnostics)} diagnostic(s): {codes}")

    def as_payload(self) -> dict:
        payload = super().as_payload()
        payload["diagnostics"] = [item.model_dump(mode="json") for item in self.diagnostics]
        return payload


class LifecycleError(LayoutError):
    """A simulation handle was used after it reached a terminal state."""

    def __init__(self, handle_id: str, state: "SimulationState", operation: str) -> None:
        self.handle_id = handle_id
        self.state = state
        self.operation = operation
        super().__init__(f"cannot {operation} simulation {handle_id} in state '{state.value}'")

    def as_payload(self) -> dict:
        payload = super().as_payload()
        payload["handle_id"] = self.handle_id
        payload["state"] = self.state.value
        payload["operation"] = self.operation
        return payload
