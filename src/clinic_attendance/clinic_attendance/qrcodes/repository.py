from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import NewQRCode, QRCode


class QRCodeRepository(Protocol):
    def get_active_for_clinic(self, clinic_id: int, on_date: date, branch_id: Optional[int] = None) -> Optional[QRCode]:
        """Active code whose [valid_date, valid_until] window contains ``on_date``.

        ``branch_id=None`` selects the clinic-wide code.
        """

        raise NotImplementedError

    def find_active_by_code(self, clinic_id: int, code: str, on_date: date) -> Optional[QRCode]:
        """Active code of the clinic with this token, valid on ``on_date``."""

        raise NotImplementedError

    def create(self, new: NewQRCode) -> QRCode:
        """Insert ``new`` as the only active code of its (clinic, branch) scope.

        Fails with DuplicateRecordError when another active code exists.
        """

        raise NotImplementedError

    def replace_active(self, new: NewQRCode) -> QRCode:
        """Deactivate every active code of the same scope and insert ``new``, atomically."""

        raise NotImplementedError
