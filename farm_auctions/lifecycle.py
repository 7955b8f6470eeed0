"""Auction creation and seller-driven status changes."""
import logging
from datetime import datetime, timezone

from farm_auctions.errors import AuthorizationError, NotFoundError, ValidationError
from farm_auctions.models import AuctionStatus, BidStatus, utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('title', 'crop_name', 'quantity', 'unit', 'end_time')


def parse_instant(value):
    """Parse an ISO-8601 string (or datetime) into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"not a timestamp: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_whole_number(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _text(data, field, errors):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        errors[field] = "must be a non-empty string"
        return None
    return value.strip()


def create_auction(store, seller_id, data):
    if not isinstance(data, dict):
        raise ValidationError("Invalid input", {"body": "expected a JSON object"})

    missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}",
                              {field: "is required" for field in missing})

    errors = {}
    now = utcnow()
    title = _text(data, 'title', errors)
    crop_name = _text(data, 'crop_name', errors)
    unit = _text(data, 'unit', errors)

    quantity = data['quantity']
    if not is_whole_number(quantity) or quantity <= 0:
        errors['quantity'] = "must be a positive integer"

    min_price = data.get('min_price')
    if min_price is not None and (not is_whole_number(min_price) or min_price < 0):
        errors['min_price'] = "must be a non-negative integer"

    description = data.get('description')
    if description is not None and not isinstance(description, str):
        errors['description'] = "must be a string"

    end_time = None
    try:
        end_time = parse_instant(data['end_time'])
    except (ValueError, OverflowError):
        errors['end_time'] = "must be an ISO-8601 timestamp"
    else:
        if end_time <= now:
            errors['end_time'] = "must be in the future"

    if errors:
        raise ValidationError("Invalid input", errors)

    auction = store.create_auction({
        "title": title,
        "crop_name": crop_name,
        "quantity": quantity,
        "unit": unit,
        "min_price": min_price,
        "seller_id": seller_id,
        "end_time": end_time,
        "created_at": now,
        "status": AuctionStatus.ACTIVE.value,
        "description": description,
    })
    logger.info(f"Auction {auction['id']} created by seller {seller_id}, ends {end_time.isoformat()}")
    return auction


def _coerce_status(enum, value):
    try:
        return enum(value).value
    except ValueError:
        allowed = ', '.join(member.value for member in enum)
        raise ValidationError("Invalid status", {"status": f"must be one of: {allowed}"}) from None


def _owned_auction(store, auction_id, requester_id):
    auction = store.get_auction(auction_id)
    if auction is None:
        raise NotFoundError("Auction not found")
    if auction["seller_id"] != requester_id:
        raise AuthorizationError("You can only update your own auctions")
    return auction


def set_status(store, auction_id, requester_id, status):
    # Any seller-chosen status is accepted, including re-opening a closed auction.
    with store.auction_lock(auction_id):
        auction = _owned_auction(store, auction_id, requester_id)
        new_status = _coerce_status(AuctionStatus, status)
        updated = store.update_auction(auction_id, {"status": new_status})
    logger.info(f"Auction {auction_id} status {auction['status']} -> {new_status}")
    return updated


def set_bid_status(store, auction_id, bid_id, requester_id, status):
    with store.auction_lock(auction_id):
        _owned_auction(store, auction_id, requester_id)
        bid = store.get_bid(bid_id)
        if bid is None or bid["auction_id"] != auction_id:
            raise NotFoundError("Bid not found")
        new_status = _coerce_status(BidStatus, status)
        updated = store.update_bid(bid_id, {"status": new_status})
    logger.info(f"Bid {bid_id} on auction {auction_id} marked {new_status}")
    return updated


def close_expired_auctions(store, now=None):
    """Close every active auction whose end_time has passed.

    Only runs when asked to (endpoint or scheduler); bid admission never
    consults end_time on its own.
    """
    now = now or utcnow()
    logger.info(f"Running close_expired_auctions at {now}")
    expired = [a for a in store.get_auctions(status=AuctionStatus.ACTIVE.value) if a["end_time"] <= now]
    logger.info(f"Found {len(expired)} expired auctions")

    closed = []
    for auction in expired:
        with store.auction_lock(auction["id"]):
            current = store.get_auction(auction["id"])
            # re-check under the lock, the seller may have changed it meanwhile
            if current is None or current["status"] != AuctionStatus.ACTIVE.value:
                continue
            closed.append(store.update_auction(auction["id"], {"status": AuctionStatus.CLOSED.value}))
        logger.info(f"Marking auction {auction['id']} as closed")
    return closed
