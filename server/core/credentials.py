# server/core/credentials.py

import logging
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from core.errors import DuplicateIdentity, InvalidCredentials, NotFound, StorageError, ValidationError
from core.security import PasswordHasher
from models.user import User


logger = logging.getLogger(__name__)


def public_user(user: User) -> dict:
    return {"id": user.id, "username": user.username, "email": user.email}


class CredentialStore:
    """
    Registers users and checks their passwords.
    Only the bcrypt hash is ever written; callers get public fields back.
    """

    def __init__(self, db: Session, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    def register(self, username: str, email: str, password: str) -> dict:
        if not username or not email or not password:
            raise ValidationError("All fields are required")

        try:
            existing = (
                self.db.query(User.id)
                .filter(or_(User.username == username, User.email == email))
                .first()
            )
            if existing:
                raise DuplicateIdentity()

            user = User(
                username=username,
                email=email,
                password_hash=self.hasher.hash(password),
            )
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same identity.
            self.db.rollback()
            raise DuplicateIdentity()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError() from e

        self.db.refresh(user)
        logger.info("Registered user id=%s username=%s", user.id, user.username)
        return public_user(user)

    def verify_credentials(self, username: str, password: str) -> User:
        try:
            user = self.db.query(User).filter(User.username == username).first()
        except SQLAlchemyError as e:
            raise StorageError() from e

        if user is None:
            self.hasher.dummy_verify()
            raise NotFound()
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials()
        return user
