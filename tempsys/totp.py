# tempsys/totp.py
# TOTP utilities (RFC 4226 / RFC 6238), no external deps
import base64
import hashlib
import hmac
import secrets
import struct
import time
from urllib.parse import quote

TOTP_DIGITS = 6
TOTP_PERIOD = 30  # seconds

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_BASE32_INDEX = {ch: i for i, ch in enumerate(BASE32_ALPHABET)}


# ------------------------------------------------------
# Base32
# ------------------------------------------------------
def decode_base32(text) -> bytes:
    """Decode Base32 text leniently.

    Lowercase input is accepted and any character outside the alphabet
    (spaces, dashes, ``=`` padding, ...) is dropped. Trailing bits that do not
    fill a whole byte are discarded.
    """
    acc = 0
    nbits = 0
    out = bytearray()
    for ch in str(text or "").upper():
        val = _BASE32_INDEX.get(ch)
        if val is None:
            continue
        acc = (acc << 5) | val
        nbits += 5
        if nbits >= 8:
            nbits -= 8
            out.append((acc >> nbits) & 0xFF)
            acc &= (1 << nbits) - 1
    return bytes(out)


def encode_base32(data: bytes) -> str:
    """Encode bytes as Base32 without ``=`` padding."""
    return base64.b32encode(bytes(data)).decode("ascii").rstrip("=")


# ------------------------------------------------------
# HOTP / TOTP
# ------------------------------------------------------
def compute_hotp(secret: bytes, counter: int, digits: int = TOTP_DIGITS) -> str:
    """HOTP value for ``counter`` (RFC 4226 section 5), zero-padded to ``digits``."""
    if not secret:
        raise ValueError("secret must not be empty")
    if counter < 0:
        raise ValueError("counter must be non-negative")
    if digits < 1:
        raise ValueError("digits must be positive")

    msg = struct.pack(">Q", counter)
    digest = hmac.new(bytes(secret), msg, hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code_int = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(code_int % (10 ** digits)).zfill(digits)


def counter_at(for_time: float, period: int = TOTP_PERIOD) -> int:
    return int(for_time // period)


def seconds_remaining(for_time: float | None = None, period: int = TOTP_PERIOD) -> int:
    """Seconds left in the window containing ``for_time``."""
    if for_time is None:
        for_time = time.time()
    return period - (int(for_time) % period)


def current_code(secret: str, for_time: float | None = None) -> str:
    """Code an authenticator app would show for ``secret`` at ``for_time``."""
    if for_time is None:
        for_time = time.time()
    return compute_hotp(decode_base32(secret), counter_at(for_time))


def verify(code, secret: str, skew_windows: int = 1, *, now: float | None = None) -> bool:
    """Verify a TOTP code allowing +/- ``skew_windows`` steps for clock drift.

    Missing or malformed input fails closed: the result is ``False``, never
    an exception. There is no replay protection, a valid code keeps
    verifying for as long as its window is within the skew range.
    """
    if not code or not secret:
        return False
    key = decode_base32(secret)
    if not key:
        return False

    if now is None:
        now = time.time()
    current = counter_at(now)
    wanted = str(code).rjust(TOTP_DIGITS, "0")
    if not wanted.isascii():
        return False

    for offset in range(-skew_windows, skew_windows + 1):
        counter = current + offset
        if counter < 0:
            continue
        if hmac.compare_digest(compute_hotp(key, counter), wanted):
            return True
    return False


# ------------------------------------------------------
# Enrollment helpers
# ------------------------------------------------------
def generate_secret(byte_length: int = 20) -> str:
    """Generate a Base32 secret from ``byte_length`` CSPRNG bytes (padding stripped)."""
    if byte_length < 1:
        raise ValueError("byte_length must be at least 1")
    return encode_base32(secrets.token_bytes(byte_length))


def provisioning_uri(secret: str, account: str, issuer: str = "TempSys") -> str:
    """otpauth:// URI understood by authenticator apps (usually shown as a QR code)."""
    label = quote(f"{issuer}:{account}", safe="")
    return (
        f"otpauth://totp/{label}?secret={secret}&issuer={quote(issuer, safe='')}"
        f"&digits={TOTP_DIGITS}&period={TOTP_PERIOD}&algorithm=SHA1"
    )
