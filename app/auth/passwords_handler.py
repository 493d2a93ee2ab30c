import asyncio

import bcrypt

from core.environment import get_bcrypt_rounds

# bcrypt only reads the first 72 bytes; newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds)).decode("utf-8")


def _check(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed_password.encode("utf-8"))
    except ValueError:
        # seeded or imported rows may hold something that is not a bcrypt hash
        return False


async def hash_password_async(password: str, rounds: int = None) -> str:
    # bcrypt is CPU bound, keep it off the event loop
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _hash, password, rounds or get_bcrypt_rounds())


async def verify_password_async(password: str, hashed_password: str) -> bool:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _check, password, hashed_password)
