from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
import logging
import uuid

from app.core.config import settings

logger = logging.getLogger(__name__)

# Tokens are issued by the external auth service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> uuid.UUID:
    """
    Acting user's id from the JWT "sub" claim.
    Returns 401 if the token is invalid or the claim is not a UUID.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            logger.warning("Token missing 'sub' field")
            raise credentials_exception
        return uuid.UUID(str(subject))

    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise credentials_exception
    except ValueError:
        logger.warning("Token 'sub' is not a valid user id")
        raise credentials_exception
