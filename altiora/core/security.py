"""
Shared Security Utilities

This module provides common security functions used across the application:
- Password hashing and verification
- ID generation (user_id, access list entry id)
- JWT access token utilities
"""

import os
import random
import secrets
import string
from datetime import datetime as dt
from datetime import timedelta as td
from datetime import timezone as tz
from typing import Optional

import bcrypt as bcrypt_lib
from dotenv import load_dotenv
from jose import JWTError, jwt

load_dotenv("altiora/.env")

BCRYPT_ROUNDS = 12

# JWT Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 120


# ================== Password Utilities ==================

def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt_lib.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt_lib.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt_lib.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# ================== ID Generation ==================

def generate_user_id() -> str:
    """
    Generate a random 8-digit user ID.
    Format: 8 numeric characters (e.g., "12345678")
    """
    return "".join(random.choices(string.digits, k=8))


def generate_access_entry_id() -> str:
    """
    Generate an opaque access list entry ID.
    Format: "al_" + 16 url-safe characters
    """
    return f"al_{secrets.token_urlsafe(12)}"


# ================== JWT Token Utilities ==================

def create_access_token(
    user_id: str,
    email: str,
    role: str,
    expires_delta: Optional[td] = None,
) -> str:
    """
    Create a JWT access token carrying the caller's identity and role.

    Args:
        user_id: The user ID to encode as subject
        email: The user's email
        role: The user's role ("user" or "admin")
        expires_delta: Optional custom expiry time

    Returns:
        Encoded JWT token string
    """
    now = dt.now(tz.utc)
    expire = now + (expires_delta or td(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": user_id,
        "email": email,
        "role": role,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT access token.

    Returns:
        Decoded payload dict or None if invalid or expired
    """
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
