import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_uuid() -> str:
    """Opaque text identifier, same shape as the auth provider's user ids"""
    return str(uuid.uuid4())
