"""The login gate: throttle, then credentials, then account state, then session."""
from security.account_state import admit
from security.results import AccountDeactivated, InvalidCredentials, LoginSuccess, ThrottleExceeded
from security.throttle import throttle_key


def attempt_login(guard, throttle, email: str, password: str, ip: str,
                  remember: bool = False, reserve_slot: bool = True):
    """Run one login attempt against ``guard``.

    With ``reserve_slot`` the throttle check and the failure count happen in
    one atomic step before the password is checked, so concurrent requests
    from one IP cannot share the last free attempt. Without it the check and
    the failure count are separate calls.

    Returns ``LoginSuccess`` or a ``LoginError``.
    """
    key = throttle_key(guard.throttle_prefix, ip)

    status = throttle.attempt(key) if reserve_slot else throttle.check(key)
    if not status.allowed:
        return ThrottleExceeded(status.retry_after)

    account = guard.verify(email, password)
    if account is None:
        if not reserve_slot:
            throttle.record_failure(key)
        return InvalidCredentials()

    throttle.clear(key)

    with guard.pending_login(account, remember) as pending:
        if not admit(account).ok:
            return AccountDeactivated()
        account.update_last_login(ip)
        pending.establish()

    return LoginSuccess(account, pending.token, remember)
