from dataclasses import dataclass


@dataclass(frozen=True)
class AdminCredential:
    salt: str
    # hex-encoded PBKDF2 output
    hash: str
