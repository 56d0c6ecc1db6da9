from dataclasses import dataclass
from typing import Callable, Optional

from deskboard.model.workspace_model import WorkspaceDocument


@dataclass(frozen=True)
class SyncState:
    """
    What the UI observes from the sync engine.
    """

    document: Optional[WorkspaceDocument] = None
    """The current local document. None until loading finishes successfully."""

    loading: bool = True
    """True until the initial fetch (and seed, if needed) finishes."""

    error: Optional[Exception] = None
    """Load error (fatal) or push-channel error."""

    save_error: Optional[Exception] = None
    """Last failed save, cleared by the next successful save. Not fatal."""

    @property
    def ready(self) -> bool:
        return not self.loading and self.document is not None and self.error is None


StateListener = Callable[[SyncState], None]
