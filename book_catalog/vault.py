import logging

import httpx

logger = logging.getLogger("book_catalog.vault")


class VaultSecretError(RuntimeError):
    """The catalog's Vault secret could not be read at startup."""


def fetch_vault_secret(*, addr: str, token: str, mount: str, path: str) -> dict[str, str]:
    """Read a KV v2 secret and return its inner ``data`` mapping."""
    url = f"{addr.rstrip('/')}/v1/{mount}/data/{path.lstrip('/')}"
    try:
        with httpx.Client(timeout=5.0) as client:
            resp = client.get(url, headers={"X-Vault-Token": token})
            resp.raise_for_status()
            payload = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("vault.secret_failed", extra={"path": path, "error": str(exc)})
        raise VaultSecretError(f"Failed to read catalog settings from Vault at {mount}/{path}") from exc
    secret = (payload.get("data") or {}).get("data") or {}
    logger.info("vault.secret_loaded", extra={"path": path, "keys": sorted(secret)})
    return secret
