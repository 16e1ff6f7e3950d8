from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# Models register themselves on Base.metadata when imported (alembic autogenerate, create_all)
from regadmin.models import *  # noqa
