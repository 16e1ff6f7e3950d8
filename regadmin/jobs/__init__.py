"""
Independent maintenance jobs against the registrant store.

Every job takes `dry_run`: the same statements run, then the transaction is
rolled back instead of committed. Jobs return a result value and never print.
"""
from sqlalchemy.orm import Session


def finish(db: Session, dry_run: bool) -> None:
    if dry_run:
        db.rollback()
    else:
        db.commit()
