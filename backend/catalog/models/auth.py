from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Admin:
    """
    Administrator account.

    Email is unique. The password hash never leaves the service layer:
    to_dict() omits it.
    """
    id: int
    email: str
    password_hash: str | None
    name: str | None
    role: str
    created_at: str

    @classmethod
    def from_row(cls, row: dict) -> "Admin":
        return cls(
            id=int(row["id"]),
            email=row["email"],
            password_hash=row.get("password_hash"),
            name=row.get("name"),
            role=row.get("role") or "admin",
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "created_at": self.created_at,
        }
