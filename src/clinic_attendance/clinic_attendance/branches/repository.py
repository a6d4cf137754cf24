from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Branch, NewBranch


class BranchRepository(Protocol):
    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        raise NotImplementedError

    def list_active_for_clinic(self, clinic_id: int) -> Sequence[Branch]:
        """Active branches ordered by display_order."""

        raise NotImplementedError

    def create(self, new: NewBranch) -> Branch:
        raise NotImplementedError
