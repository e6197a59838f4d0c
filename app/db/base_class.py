from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Declarative base shared by every SQLAlchemy model.
    Its metadata is used to create the database tables.
    """
