"""Read-time projections of auctions.

Nothing here writes to the store. The highest bid is recomputed from the
full bid set on every call rather than cached on the auction.

When an auction has no bids ``highestBid`` is ``None``; falling back to
``min_price`` for display is left to whoever renders the summary.
"""
from datetime import datetime


def isoformat(value):
    if isinstance(value, datetime):
        return value.isoformat() + 'Z' if value.tzinfo is None else value.isoformat()
    return value


def _render(record):
    return {key: isoformat(value) for key, value in record.items()}


def highest_bid(bids):
    # strict > so the first-seen bid wins a tie
    highest = None
    for bid in bids:
        if highest is None or bid["amount"] > highest["amount"]:
            highest = bid
    return highest


def public_user(user):
    if user is None:
        return None
    return {key: value for key, value in user.items() if key != "password_hash"}


def seller_summary(user):
    if user is None:
        return None
    return {
        "id": user["id"],
        "name": user.get("name"),
        "username": user.get("username"),
        "location": user.get("location"),
        "profile_pic": user.get("profile_pic"),
    }


def bidder_summary(user):
    if user is None:
        return None
    return {
        "id": user["id"],
        "name": user.get("name"),
        "username": user.get("username"),
        "profile_pic": user.get("profile_pic"),
    }


def render_bid(store, bid):
    rendered = _render(bid)
    rendered["bidder"] = bidder_summary(store.get_user(bid["bidder_id"]))
    return rendered


def summarize(store, auction):
    bids = store.get_bids_by_auction(auction["id"])
    highest = highest_bid(bids)
    summary = _render(auction)
    summary["seller"] = seller_summary(store.get_user(auction["seller_id"]))
    summary["highestBid"] = highest["amount"] if highest else None
    summary["bidCount"] = len(bids)
    return summary


def detail(store, auction):
    # sorted() is stable, so equal amounts keep their insertion order
    bids = sorted(store.get_bids_by_auction(auction["id"]), key=lambda b: b["amount"], reverse=True)
    result = _render(auction)
    result["seller"] = seller_summary(store.get_user(auction["seller_id"]))
    result["bids"] = [render_bid(store, bid) for bid in bids]
    return result
