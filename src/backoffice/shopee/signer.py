"""HMAC-SHA256 request signing for the Shopee Open Platform."""

import hashlib
import hmac


def base_string(
    path: str,
    timestamp: int,
    partner_id: str | int,
    access_token: str | None = None,
    shop_id: str | int | None = None,
) -> str:
    """
    Build the string that gets signed.

    Order is fixed: partner id, API path, timestamp, then the access token and
    the shop id, each only when present.
    """
    value = f"{partner_id}{path}{timestamp}"
    if access_token:
        value += access_token
    if shop_id:
        value += str(shop_id)
    return value


def sign(
    path: str,
    timestamp: int,
    partner_id: str | int,
    partner_key: str,
    access_token: str | None = None,
    shop_id: str | int | None = None,
) -> str:
    """
    Sign a Shopee API call.

    Args:
        path (str): Full API path, e.g. ``/api/v2/auth/token/get``.
        timestamp (int): Unix timestamp in seconds, also sent as a query parameter.
        partner_id (str | int): Partner id of the integrating application.
        partner_key (str): Partner key, used as-is (UTF-8) as the HMAC secret.
        access_token (str | None): Shop access token for shop-level calls.
        shop_id (str | int | None): Shop id for shop-level calls.

    Returns:
        str: Lowercase hex HMAC-SHA256 digest.
    """
    message = base_string(path, timestamp, partner_id, access_token, shop_id)
    return hmac.new(
        partner_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()
