"""Entity storage for users, auctions and bids.

``AuctionStore`` is the interface the rest of the package talks to. Records
cross it as plain dicts and every read hands back a copy, so nothing outside
the store can change stored state without going through an update call.

Two backends exist: ``MemoryStore`` (the default) keeps everything in owned
dicts, ``SqlStore`` maps the same calls onto the Flask-SQLAlchemy models.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager

from farm_auctions.errors import NotFoundError
from farm_auctions.models import Auction, AuctionStatus, Bid, BidStatus, User, utcnow

logger = logging.getLogger(__name__)


class SequentialIds:
    """Per-kind monotonically increasing integer ids, safe across threads."""

    def __init__(self, start=1):
        self._start = start
        self._counters = {}
        self._lock = threading.Lock()

    def __call__(self, kind):
        with self._lock:
            counter = self._counters.setdefault(kind, itertools.count(self._start))
            return next(counter)


class AuctionStore(ABC):

    def __init__(self):
        self._auction_locks = {}
        self._auction_locks_guard = threading.Lock()

    @contextmanager
    def auction_lock(self, auction_id):
        """Serialize every read-check-write sequence touching one auction.

        Raises ``NotFoundError`` for unknown ids, so locks only ever exist
        for auctions that were actually created.
        """
        with self._auction_locks_guard:
            lock = self._auction_locks.get(auction_id)
            if lock is None:
                if self.get_auction(auction_id) is None:
                    raise NotFoundError("Auction not found")
                lock = self._auction_locks[auction_id] = threading.RLock()
        with lock:
            yield

    # Users
    @abstractmethod
    def create_user(self, data): ...

    @abstractmethod
    def get_user(self, user_id): ...

    @abstractmethod
    def get_user_by_username(self, username): ...

    @abstractmethod
    def get_user_by_phone(self, phone): ...

    # Auctions
    @abstractmethod
    def create_auction(self, data): ...

    @abstractmethod
    def get_auction(self, auction_id): ...

    @abstractmethod
    def get_auctions(self, **criteria): ...

    @abstractmethod
    def update_auction(self, auction_id, changes): ...

    # Bids
    @abstractmethod
    def create_bid(self, data): ...

    @abstractmethod
    def get_bid(self, bid_id): ...

    @abstractmethod
    def get_bids_by_auction(self, auction_id): ...

    @abstractmethod
    def get_bids_by_bidder(self, bidder_id): ...

    @abstractmethod
    def update_bid(self, bid_id, changes): ...


class MemoryStore(AuctionStore):
    """Dict-backed store. ``id_generator`` is any callable ``kind -> id``."""

    def __init__(self, id_generator=None):
        super().__init__()
        self._next_id = id_generator or SequentialIds()
        self._lock = threading.RLock()
        self._users = {}
        self._auctions = {}
        self._bids = {}

    def _insert(self, table, kind, data, **defaults):
        record = dict(defaults)
        record.update(data)
        record["id"] = self._next_id(kind)
        with self._lock:
            table[record["id"]] = record
        return dict(record)

    def _update(self, table, record_id, changes):
        with self._lock:
            existing = table.get(record_id)
            if existing is None:
                return None
            updated = dict(existing)
            updated.update({k: v for k, v in changes.items() if k != "id"})
            table[record_id] = updated
            return dict(updated)

    @staticmethod
    def _copy(record):
        return dict(record) if record is not None else None

    def create_user(self, data):
        return self._insert(self._users, 'user', data, role='farmer')

    def get_user(self, user_id):
        return self._copy(self._users.get(user_id))

    def get_user_by_username(self, username):
        with self._lock:
            found = next((u for u in self._users.values() if u.get("username") == username), None)
        return self._copy(found)

    def get_user_by_phone(self, phone):
        with self._lock:
            found = next((u for u in self._users.values() if u.get("phone") == phone), None)
        return self._copy(found)

    def create_auction(self, data):
        return self._insert(self._auctions, 'auction', data,
                            created_at=utcnow(), status=AuctionStatus.ACTIVE.value,
                            min_price=None, description=None)

    def get_auction(self, auction_id):
        return self._copy(self._auctions.get(auction_id))

    def get_auctions(self, **criteria):
        with self._lock:
            auctions = list(self._auctions.values())
        return [
            dict(auction) for auction in auctions
            if all(auction.get(field) == value for field, value in criteria.items())
        ]

    def update_auction(self, auction_id, changes):
        return self._update(self._auctions, auction_id, changes)

    def create_bid(self, data):
        return self._insert(self._bids, 'bid', data,
                            created_at=utcnow(), status=BidStatus.PENDING.value)

    def get_bid(self, bid_id):
        return self._copy(self._bids.get(bid_id))

    def get_bids_by_auction(self, auction_id):
        with self._lock:
            return [dict(b) for b in self._bids.values() if b["auction_id"] == auction_id]

    def get_bids_by_bidder(self, bidder_id):
        with self._lock:
            return [dict(b) for b in self._bids.values() if b["bidder_id"] == bidder_id]

    def update_bid(self, bid_id, changes):
        return self._update(self._bids, bid_id, changes)


class SqlStore(AuctionStore):
    """Store backed by the Flask-SQLAlchemy session; needs an app context."""

    def __init__(self, database):
        super().__init__()
        self.db = database

    @property
    def session(self):
        return self.db.session

    def _add(self, instance):
        self.session.add(instance)
        self.session.commit()
        return instance.to_dict()

    def _get(self, model, record_id):
        instance = self.session.get(model, record_id)
        return instance.to_dict() if instance is not None else None

    def _find(self, model, order_by=None, **criteria):
        stmt = self.db.select(model).filter_by(**criteria).order_by(order_by if order_by is not None else model.id)
        return [row.to_dict() for row in self.session.execute(stmt).scalars()]

    def _update(self, model, record_id, changes):
        instance = self.session.get(model, record_id)
        if instance is None:
            return None
        for field, value in changes.items():
            if field != "id":
                setattr(instance, field, value)
        self.session.commit()
        return instance.to_dict()

    def create_user(self, data):
        return self._add(User(**data))

    def get_user(self, user_id):
        return self._get(User, user_id)

    def get_user_by_username(self, username):
        found = self._find(User, username=username)
        return found[0] if found else None

    def get_user_by_phone(self, phone):
        found = self._find(User, phone=phone)
        return found[0] if found else None

    def create_auction(self, data):
        return self._add(Auction(**data))

    def get_auction(self, auction_id):
        return self._get(Auction, auction_id)

    def get_auctions(self, **criteria):
        return self._find(Auction, **criteria)

    def update_auction(self, auction_id, changes):
        return self._update(Auction, auction_id, changes)

    def create_bid(self, data):
        return self._add(Bid(**data))

    def get_bid(self, bid_id):
        return self._get(Bid, bid_id)

    def get_bids_by_auction(self, auction_id):
        return self._find(Bid, auction_id=auction_id)

    def get_bids_by_bidder(self, bidder_id):
        return self._find(Bid, bidder_id=bidder_id)

    def update_bid(self, bid_id, changes):
        return self._update(Bid, bid_id, changes)


def build_store(app, database):
    backend = app.config.get('STORAGE_BACKEND', 'memory')
    if backend == 'sql':
        logger.info("Using SQL store at %s", app.config.get('SQLALCHEMY_DATABASE_URI'))
        return SqlStore(database)
    if backend != 'memory':
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    logger.info("Using in-memory store")
    return MemoryStore()
