"""API Dependencies - Authentication"""
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB
from domain.enums import UserRole
from infrastructure.security import decode_access_token, get_password_hash, verify_password
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# (username, password, full name, role, user id)
SEED_USERS = [
    ("admin", "admin123", "Admin User", UserRole.ADMIN, "123e4567-e89b-12d3-a456-426614174000"),
    ("guest", "guest123", "Guest User", UserRole.GUEST, "123e4567-e89b-12d3-a456-426614174001"),
    ("other", "other123", "Other Guest", UserRole.GUEST, "123e4567-e89b-12d3-a456-426614174002"),
]


class UserDirectory:
    """In-memory account directory standing in for the platform's user store.

    Passwords are hashed on first lookup so importing the module stays cheap.
    """

    def __init__(self, seed=SEED_USERS):
        self._seed = {username: entry for username, *entry in seed}
        self._accounts: Dict[str, UserInDB] = {}

    def user_ids(self) -> List[UUID]:
        return [UUID(entry[-1]) for entry in self._seed.values()]

    def get(self, username: str) -> Optional[UserInDB]:
        if username not in self._seed:
            return None
        if username not in self._accounts:
            password, full_name, role, user_id = self._seed[username]
            self._accounts[username] = UserInDB(
                user_id=UUID(user_id),
                username=username,
                full_name=full_name,
                email=f"{username}@example.com",
                role=role,
                hashed_password=get_password_hash(password)
            )
        return self._accounts[username]

    def authenticate(self, username: str, password: str) -> Optional[UserInDB]:
        user = self.get(username)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user


users = UserDirectory()


async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = users.get(token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def get_current_admin_user(current_user: User = Depends(get_current_active_user)):
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return current_user
