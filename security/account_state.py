from dataclasses import dataclass

DEACTIVATED = "deactivated"


@dataclass(frozen=True)
class Admitted:
    ok = True


@dataclass(frozen=True)
class Rejected:
    reason: str
    ok = False


def admit(account):
    """Account-state gate: only active accounts keep authenticated access."""
    if not account.is_active:
        return Rejected(DEACTIVATED)
    return Admitted()
