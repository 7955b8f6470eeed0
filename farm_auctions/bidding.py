"""Bid admission.

``place_bid`` runs its whole check-then-write sequence while holding the
auction's lock, so two requests racing with the same amount cannot both be
admitted: the second one sees the first as the current highest bid.

Only the auction status gates admission. An auction past its end_time but
still ``active`` keeps taking bids until the seller (or the expiry sweep)
closes it.
"""
import logging

from farm_auctions.errors import (
    AuctionClosedError,
    BidTooLowError,
    NotFoundError,
    SelfBidError,
    ValidationError,
)
from farm_auctions.lifecycle import is_whole_number
from farm_auctions.models import AuctionStatus, BidStatus
from farm_auctions.views import highest_bid, render_bid

logger = logging.getLogger(__name__)


def place_bid(store, auction_id, bidder_id, amount):
    with store.auction_lock(auction_id):
        auction = store.get_auction(auction_id)
        if auction is None:
            raise NotFoundError("Auction not found")

        if auction["seller_id"] == bidder_id:
            raise SelfBidError("You cannot bid on your own auction")

        if auction["status"] != AuctionStatus.ACTIVE.value:
            raise AuctionClosedError("This auction is no longer active")

        if not is_whole_number(amount) or amount <= 0:
            raise ValidationError("Invalid input", {"amount": "must be a positive integer"})

        highest = highest_bid(store.get_bids_by_auction(auction_id))
        if highest is not None and amount <= highest["amount"]:
            logger.info(f"Rejected bid of {amount} on auction {auction_id}: highest is {highest['amount']}")
            raise BidTooLowError("Your bid must be higher than the current highest bid",
                                 current_highest=highest["amount"])

        min_price = auction.get("min_price")
        if highest is None and min_price is not None and amount < min_price:
            logger.info(f"Rejected bid of {amount} on auction {auction_id}: below minimum {min_price}")
            raise BidTooLowError("Your bid must be at least the minimum price",
                                 current_highest=None, min_price=min_price)

        bid = store.create_bid({
            "auction_id": auction_id,
            "bidder_id": bidder_id,
            "amount": amount,
            "status": BidStatus.PENDING.value,
        })

    logger.info(f"Bid {bid['id']} of {amount} placed on auction {auction_id} by user {bidder_id}")
    return render_bid(store, bid)
