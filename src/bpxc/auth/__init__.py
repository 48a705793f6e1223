"""Authentication for the Backpack API.

Ed25519 key handling, canonical message signing, credential storage and
secret redaction.
"""

from bpxc.auth.creds import (
    BackpackCredentials,
    creds_exist,
    delete_creds,
    get_creds_from_env,
    get_creds_path,
    load_creds,
    resolve_creds,
    save_creds,
)
from bpxc.auth.keys import (
    KeyPair,
    PrivateKeyHandle,
    PublicKeyHandle,
    derive_private_key_handle,
    derive_public_key_handle,
    generate_keypair,
    public_key_handle_from,
)
from bpxc.auth.redact import (
    REDACTED,
    mask_string,
    redact_secrets,
    safe_dict_for_logging,
)
from bpxc.auth.signing import (
    AuthHeaders,
    RequestSigner,
    build_message,
    sign_message,
    verify_signature,
)

__all__ = [
    # Keys
    "KeyPair",
    "PrivateKeyHandle",
    "PublicKeyHandle",
    "derive_private_key_handle",
    "derive_public_key_handle",
    "generate_keypair",
    "public_key_handle_from",
    # Signing
    "AuthHeaders",
    "RequestSigner",
    "build_message",
    "sign_message",
    "verify_signature",
    # Credentials
    "BackpackCredentials",
    "creds_exist",
    "delete_creds",
    "get_creds_from_env",
    "get_creds_path",
    "load_creds",
    "resolve_creds",
    "save_creds",
    # Redaction
    "REDACTED",
    "mask_string",
    "redact_secrets",
    "safe_dict_for_logging",
]
