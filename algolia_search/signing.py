"""
Secured API key derivation.

A secured API key is `base64(hex_signature + query_string)` where the signature is
HMAC-SHA256 of the query string keyed with a private API key. The service verifies
the signature and applies the embedded parameters as the effective scope of any
request made with the derived key. Derivation is one-way and stateless.
"""

import base64
import binascii
import hashlib
import hmac
import warnings
from urllib.parse import quote_plus

from algolia_search.query import Query, decode_query


__all__ = [
    "sign",
    "generate_secured_api_key",
    "unpack_secured_api_key",
    "SIGNATURE_LENGTH",
]


# Hex-encoded SHA-256 digest
SIGNATURE_LENGTH = 64


def sign(secret, message):
    # type: (str, str) -> str
    """
    Compute a lowercase hex HMAC-SHA256 digest.

    :param secret: Signing key (UTF-8 encoded verbatim)
    :param message: Message to sign (UTF-8 encoded)
    :return: 64-character lowercase hex digest
    """
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def _pack(private_api_key, query_string):
    # type: (str, str) -> str
    signature = sign(private_api_key, query_string)
    return base64.b64encode(f"{signature}{query_string}".encode("utf-8")).decode("ascii")


def generate_secured_api_key(private_api_key, query, user_token=None):
    # type: (str, Query|dict|str, str|None) -> str
    """
    Derive a secured API key restricted to the given query parameters.

    With a `Query` or mapping, a non-empty `user_token` is merged in as `userToken`
    before encoding. The caller's query object is left untouched.

    Passing a string selects the deprecated tag-filter form: a string without `=`
    is wrapped as `tagFilters=<string>`; a string containing `=` is taken as a
    complete query string and signed as-is (with `&userToken=...` appended when a
    token is given).

    :param private_api_key: API key the derived key inherits its rights from
    :param query: Query scope, as `Query`, parameter mapping, or legacy tag filters
    :param user_token: Optional end-user identifier embedded in the scope
    :return: Base64 encoded secured API key
    """
    if isinstance(query, str):
        warnings.warn(
            "Passing tag filters as a string is deprecated, use a Query instead",
            DeprecationWarning,
            stacklevel=2,
        )
        if "=" not in query:
            return generate_secured_api_key(private_api_key, Query().set_tag_filters(query), user_token)
        query_string = query
        if user_token:
            query_string = f"{query_string}&userToken={quote_plus(user_token, safe='*')}"
        return _pack(private_api_key, query_string)

    query = query.copy() if isinstance(query, Query) else Query(query)
    if user_token:
        query.set_user_token(user_token)
    return _pack(private_api_key, query.get_query_string())


def unpack_secured_api_key(private_api_key, secured_api_key):
    # type: (str, str) -> dict[str, str]
    """
    Verify a secured API key and return the parameters it is restricted to.

    :param private_api_key: API key the secured key was derived from
    :param secured_api_key: Base64 encoded secured API key
    :return: Embedded query parameters
    :raises ValueError: If the key is malformed or the signature does not match
    """
    try:
        decoded = base64.b64decode(secured_api_key, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid secured API key: {e}") from e
    if len(decoded) < SIGNATURE_LENGTH:
        raise ValueError("Invalid secured API key: too short")

    signature, query_string = decoded[:SIGNATURE_LENGTH], decoded[SIGNATURE_LENGTH:]
    if not hmac.compare_digest(signature, sign(private_api_key, query_string)):
        raise ValueError("Invalid secured API key: signature mismatch")
    return decode_query(query_string)
