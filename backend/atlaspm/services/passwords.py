"""
Password hashing for user accounts (bcrypt via passlib).

The cost factor comes from PASSWORD_HASH_ROUNDS so the test suite can run
with a cheap setting. Hashes are stored as bytes in `appuser.password_hash`.

bcrypt is CPU-bound (hundreds of milliseconds at the default cost), so the
hash runs in Starlette's worker threadpool and the event loop keeps serving
other requests meanwhile.
"""

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from atlaspm.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.password_hash_rounds,
)


async def hash_password(plaintext: str) -> bytes:
    digest = await run_in_threadpool(pwd_context.hash, plaintext)
    return digest.encode("utf-8")
