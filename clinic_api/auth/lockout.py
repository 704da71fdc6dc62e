"""
Failed-login lockout policy.

Per user the policy is either Unlocked(attempts) or Locked(until). Every
transition is a single UPDATE statement evaluated by the database, so two
concurrent failures for the same user both land in the counter.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import and_, case, literal, null
from sqlalchemy.orm import Session

from ..database import UTCDateTime, utcnow
from .models import User

# Set up logging
logger = logging.getLogger(__name__)


class LockoutPolicy:
    """
    Time-boxed brute-force countermeasure.

    Args:
        max_attempts: Consecutive failures that lock the account
        lock_duration: How long the lock lasts before it heals itself
        clock: Returns the current aware UTC time
    """
    def __init__(
        self,
        max_attempts: int = 5,
        lock_duration: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_attempts = max_attempts
        self.lock_duration = lock_duration
        self.clock = clock

    def is_locked(self, user: User, now: Optional[datetime] = None) -> bool:
        return user.is_locked(now or self.clock())

    def register_failure(self, db: Session, user: User) -> None:
        """
        Record a failed login.

        An expired lock restarts the counter at 1. Otherwise the counter is
        incremented and, once it reaches max_attempts on an unlocked account,
        the account is locked for lock_duration.
        """
        now = self.clock()
        now_param = literal(now, UTCDateTime())
        deadline = literal(now + self.lock_duration, UTCDateTime())

        lock_expired = and_(User.lock_until.isnot(None), User.lock_until <= now_param)
        reaches_limit = and_(
            User.lock_until.is_(None),
            User.login_attempts + 1 >= self.max_attempts,
        )

        db.query(User).filter(User.id == user.id).update(
            {
                User.login_attempts: case(
                    (lock_expired, 1),
                    else_=User.login_attempts + 1,
                ),
                User.lock_until: case(
                    (lock_expired, null()),
                    (reaches_limit, deadline),
                    else_=User.lock_until,
                ),
            },
            synchronize_session=False,
        )
        db.commit()
        db.refresh(user)

        if user.is_locked(now):
            logger.warning(f"Account {user.id} locked until {user.lock_until.isoformat()}")
        else:
            logger.info(f"Failed login recorded for {user.id} ({user.login_attempts} attempts)")

    def register_success(self, db: Session, user: User) -> None:
        """Reset the counter after a successful login and stamp last_login."""
        now = self.clock()
        values = {User.last_login: now}
        if (user.login_attempts or 0) > 0 or user.lock_until is not None:
            values[User.login_attempts] = 0
            values[User.lock_until] = None
        db.query(User).filter(User.id == user.id).update(values, synchronize_session=False)
        db.commit()
        db.refresh(user)
