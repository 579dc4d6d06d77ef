"""
Per-login application state.

A SessionState is opened when a token is issued and closed when it is revoked
or its token expires.
For users with an account it owns a BalanceWatcher: a daemon thread that
re-reads the account balance on a fixed interval and flags a change when it
differs from the last value seen. The watcher only reads.
"""

import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy.exc import SQLAlchemyError
from credovae.extensions import db
from credovae.models.account import Account

logger = logging.getLogger(__name__)


def _past(deadline, now=None):
    if deadline is None:
        return False
    return (now or datetime.now(timezone.utc)) >= deadline


class BalanceWatcher:
    def __init__(self, app, account_id, last_seen_balance, interval=10.0,
                 expires_at=None, on_expire=None):
        self.app = app
        self.account_id = account_id
        self.interval = interval
        self._last_seen = Decimal(last_seen_balance) if last_seen_balance is not None else None
        self._changed = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = None
        self.expires_at = expires_at
        self.on_expire = on_expire

    def expired(self, now=None):
        return _past(self.expires_at, now)

    def read_balance(self):
        with self.app.app_context():
            try:
                account = db.session.get(Account, self.account_id)
                return Decimal(account.balance) if account is not None else None
            finally:
                db.session.remove()

    def poll_once(self):
        """Returns True when the stored balance moved since the last poll."""
        balance = self.read_balance()
        if balance is None:
            return False
        with self._lock:
            if balance == self._last_seen:
                return False
            logger.debug("Balance for %s updated: %s", self.account_id, balance)
            self._last_seen = balance
            self._changed = True
            return True

    def snapshot(self):
        """Last observed balance and whether it changed since the previous snapshot."""
        with self._lock:
            changed, self._changed = self._changed, False
            return {'balance': self._last_seen, 'changed': changed}

    def _run(self):
        while not self._stop.wait(self.interval):
            if self.expired():
                logger.info("Session for %s expired, balance refresh stopped", self.account_id)
                if self.on_expire is not None:
                    self.on_expire()
                return
            try:
                self.poll_once()
            except SQLAlchemyError as e:
                logger.error("Balance refresh for %s failed: %s", self.account_id, e)

    def start(self):
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name=f"balance-watcher-{self.account_id}", daemon=True
        )
        self._thread.start()

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()


class SessionState:
    def __init__(self, jti, user_id, role, account_id=None, watcher=None, expires_at=None):
        self.jti = jti
        self.user_id = user_id
        self.role = role
        self.account_id = account_id
        self.watcher = watcher
        self.created_at = datetime.now(timezone.utc)
        self.expires_at = expires_at

    def expired(self, now=None):
        return _past(self.expires_at, now)

    def close(self):
        if self.watcher is not None:
            self.watcher.stop(timeout=1.0)


class SessionRegistry:
    def __init__(self, app=None):
        self.app = app
        self._sessions = {}
        self._lock = threading.Lock()

    def open(self, jti, user, account=None, expires_at=None):
        """
        Register the session for a freshly issued token. Sessions whose token
        has expired are dropped first.
        """
        self.sweep()
        watcher = None
        config = self.app.config
        if account is not None:
            watcher = BalanceWatcher(
                self.app,
                account.account_id,
                account.balance,
                interval=config.get('BALANCE_POLL_SECONDS', 10.0),
                expires_at=expires_at,
                on_expire=lambda: self._expire(jti),
            )

        state = SessionState(
            jti,
            user.user_id,
            user.role,
            account_id=account.account_id if account is not None else None,
            watcher=watcher,
            expires_at=expires_at,
        )
        with self._lock:
            previous = self._sessions.pop(jti, None)
            self._sessions[jti] = state
        if previous is not None:
            previous.close()
        # Started only once registered, so an expiring watcher can find its entry
        if watcher is not None and config.get('BALANCE_POLL_ENABLED', True):
            watcher.start()
        return state

    def get(self, jti):
        with self._lock:
            return self._sessions.get(jti)

    def close(self, jti):
        with self._lock:
            state = self._sessions.pop(jti, None)
        if state is not None:
            state.close()
        return state

    def _expire(self, jti):
        # Called from the watcher thread; leave newer sessions under the same jti alone
        with self._lock:
            state = self._sessions.get(jti)
            if state is None or not state.expired():
                return
            del self._sessions[jti]
        state.close()

    def sweep(self, now=None):
        """Close every session whose token has expired. Returns how many were closed."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            expired = [jti for jti, state in self._sessions.items() if state.expired(now)]
            states = [self._sessions.pop(jti) for jti in expired]
        for state in states:
            state.close()
        return len(states)

    def close_all(self):
        with self._lock:
            states = list(self._sessions.values())
            self._sessions.clear()
        for state in states:
            state.close()

    def __len__(self):
        with self._lock:
            return len(self._sessions)
