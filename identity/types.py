"""Value types for cart/order ownership."""

from dataclasses import dataclass

from common.choices import OwnerKind

ANONYMOUS_PREFIX = "anon:"
ACCOUNT_PREFIX = "acct:"


@dataclass(frozen=True)
class Identity:
    """The anonymous-or-authenticated owner of a cart at a point in time."""

    kind: str
    value: str

    @classmethod
    def anonymous(cls, token: str) -> "Identity":
        return cls(kind=OwnerKind.ANONYMOUS, value=str(token))

    @classmethod
    def account(cls, account_id) -> "Identity":
        return cls(kind=OwnerKind.AUTHENTICATED, value=str(account_id))

    @classmethod
    def from_key(cls, owner_key: str) -> "Identity":
        if owner_key.startswith(ACCOUNT_PREFIX):
            return cls.account(owner_key[len(ACCOUNT_PREFIX) :])
        if owner_key.startswith(ANONYMOUS_PREFIX):
            return cls.anonymous(owner_key[len(ANONYMOUS_PREFIX) :])
        raise ValueError(f"Unrecognised owner key: {owner_key!r}")

    @property
    def is_anonymous(self) -> bool:
        return self.kind == OwnerKind.ANONYMOUS

    @property
    def key(self) -> str:
        """Storage key used as the ownership column on carts and orders."""

        prefix = ANONYMOUS_PREFIX if self.is_anonymous else ACCOUNT_PREFIX
        return f"{prefix}{self.value}"

    def __str__(self) -> str:  # pragma: no cover
        return self.key
