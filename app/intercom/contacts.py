"""Identity resolver: map an email string to an Intercom contact.

Behavior:
    Look the contact up by email and return it unchanged when found; otherwise
    create a `user` contact whose name defaults to the email local-part.

Concurrency:
    Lookup-then-create is not atomic. Two concurrent calls for an unseen email can
    both try to create; a provider duplicate rejection (409) is resolved by
    looking the contact up again.
"""

import logging

from app.core.errors import InvalidRequest, UpstreamError


logger = logging.getLogger(__name__)

DUPLICATE_CONTACT_STATUS = 409


def default_name(email: str) -> str:
    """Return the substring before the first `@` (whole value if none)."""
    return email.split("@", 1)[0]


def _first_contact(payload):
    if isinstance(payload, list):
        contacts = payload
    elif isinstance(payload, dict):
        contacts = payload.get("data") or []
    else:
        contacts = []
    return contacts[0] if contacts else None


async def find_user(client, email: str) -> dict | None:
    """Return the first contact matching `email`, or `None`."""
    payload = await client.get("/contacts", params={"email": email})
    return _first_contact(payload)


async def ensure_user(client, email: str) -> dict:
    """Return the contact for `email`, creating it when absent.

    Args:
        client: `IntercomClient` bound to a configured credential.
        email: User identifier. Only emptiness is validated; malformed values
            are passed through to the provider.

    Returns:
        The provider's contact document.

    Raises:
        InvalidRequest: Empty email.
        UpstreamError: Lookup or create failed.
    """
    if not email:
        raise InvalidRequest("User email is required")

    contact = await find_user(client, email)
    if contact:
        return contact

    logger.info("Creating Intercom contact for %s", email)
    try:
        return await client.post(
            "/contacts",
            json_body={"role": "user", "email": email, "name": default_name(email)},
        )
    except UpstreamError as exc:
        if exc.status != DUPLICATE_CONTACT_STATUS:
            raise
        # Lost a create race; use the contact the provider already holds.
        contact = await find_user(client, email)
        if not contact:
            raise
        return contact
