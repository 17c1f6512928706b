from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Giao diện repository cho User.

    Lưu ý (DIP): tầng đồng bộ phụ thuộc vào interface này, không phụ thuộc trực tiếp DB cụ thể.
    """

    def list_all(self) -> Sequence[User]:
        raise NotImplementedError

    def upsert_many(self, users: Iterable[User]) -> None:
        raise NotImplementedError

    def delete(self, user_id: str) -> bool:
        raise NotImplementedError
