import threading
import unittest

from farm_auctions.bidding import place_bid
from farm_auctions.errors import (
    AuctionClosedError,
    BidTooLowError,
    NotFoundError,
    SelfBidError,
    ValidationError,
)
from farm_auctions.lifecycle import create_auction, set_status
from farm_auctions.storage import MemoryStore
from farm_auctions.views import summarize

from tests.support import auction_payload, hours_from_now, make_user


class PlaceBidTestCase(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.seller = make_user(self.store, 'rajpatel')
        self.bidder = make_user(self.store, 'mohanverma')
        self.rival = make_user(self.store, 'harpreetkaur')
        self.auction = create_auction(self.store, self.seller["id"], auction_payload(min_price=100))

    def bid_count(self):
        return len(self.store.get_bids_by_auction(self.auction["id"]))

    def test_first_bid_accepted_and_enriched(self):
        bid = place_bid(self.store, self.auction["id"], self.bidder["id"], 150)

        self.assertEqual(bid["amount"], 150)
        self.assertEqual(bid["status"], "pending")
        self.assertEqual(bid["auction_id"], self.auction["id"])
        self.assertEqual(bid["bidder"], {
            "id": self.bidder["id"],
            "name": "Mohanverma",
            "username": "mohanverma",
            "profile_pic": "https://example.com/mohanverma.jpg",
        })
        self.assertTrue(bid["created_at"].endswith("Z"))

    def test_min_price_scenario(self):
        with self.assertRaises(BidTooLowError) as ctx:
            place_bid(self.store, self.auction["id"], self.bidder["id"], 80)
        self.assertIsNone(ctx.exception.current_highest)
        self.assertEqual(ctx.exception.min_price, 100)
        self.assertEqual(self.bid_count(), 0)

        place_bid(self.store, self.auction["id"], self.bidder["id"], 150)
        self.assertEqual(summarize(self.store, self.auction)["highestBid"], 150)

        with self.assertRaises(BidTooLowError) as ctx:
            place_bid(self.store, self.auction["id"], self.rival["id"], 150)
        self.assertEqual(ctx.exception.current_highest, 150)
        self.assertEqual(ctx.exception.to_dict()["currentHighestBid"], 150)

        place_bid(self.store, self.auction["id"], self.rival["id"], 200)
        summary = summarize(self.store, self.auction)
        self.assertEqual(summary["highestBid"], 200)
        self.assertEqual(summary["bidCount"], 2)

    def test_bid_equal_to_min_price_accepted(self):
        bid = place_bid(self.store, self.auction["id"], self.bidder["id"], 100)
        self.assertEqual(bid["amount"], 100)

    def test_min_price_only_applies_to_first_bid(self):
        place_bid(self.store, self.auction["id"], self.bidder["id"], 100)
        self.store.update_auction(self.auction["id"], {"min_price": 500})
        bid = place_bid(self.store, self.auction["id"], self.rival["id"], 101)
        self.assertEqual(bid["amount"], 101)

    def test_no_min_price_accepts_any_positive_first_bid(self):
        auction = create_auction(self.store, self.seller["id"], auction_payload(min_price=None))
        bid = place_bid(self.store, auction["id"], self.bidder["id"], 1)
        self.assertEqual(bid["amount"], 1)

    def test_strictly_increasing_sequence(self):
        for amount in (110, 120, 135, 200):
            place_bid(self.store, self.auction["id"], self.bidder["id"], amount)

        for amount in (200, 199, 150):
            with self.assertRaises(BidTooLowError):
                place_bid(self.store, self.auction["id"], self.rival["id"], amount)

        amounts = [b["amount"] for b in self.store.get_bids_by_auction(self.auction["id"])]
        self.assertEqual(amounts, [110, 120, 135, 200])

    def test_bidder_may_raise_own_bid(self):
        place_bid(self.store, self.auction["id"], self.bidder["id"], 150)
        place_bid(self.store, self.auction["id"], self.bidder["id"], 160)
        self.assertEqual(self.bid_count(), 2)

    def test_self_bid_rejected(self):
        with self.assertRaises(SelfBidError):
            place_bid(self.store, self.auction["id"], self.seller["id"], 1000)
        self.assertEqual(summarize(self.store, self.auction)["bidCount"], 0)

    def test_closed_auction_rejects_any_amount(self):
        set_status(self.store, self.auction["id"], self.seller["id"], "closed")
        for amount in (50, 150, 10 ** 9):
            with self.assertRaises(AuctionClosedError):
                place_bid(self.store, self.auction["id"], self.bidder["id"], amount)
        self.assertEqual(self.bid_count(), 0)

    def test_cancelled_auction_rejects_bids(self):
        set_status(self.store, self.auction["id"], self.seller["id"], "cancelled")
        with self.assertRaises(AuctionClosedError):
            place_bid(self.store, self.auction["id"], self.bidder["id"], 150)

    def test_expired_but_active_auction_still_admits(self):
        auction = self.store.create_auction({
            "title": "Old lot", "crop_name": "Rice", "quantity": 5, "unit": "bag",
            "seller_id": self.seller["id"], "end_time": hours_from_now(-1),
        })
        bid = place_bid(self.store, auction["id"], self.bidder["id"], 10)
        self.assertEqual(bid["amount"], 10)

    def test_missing_auction(self):
        with self.assertRaises(NotFoundError):
            place_bid(self.store, 9999, self.bidder["id"], 150)

    def test_invalid_amounts(self):
        for amount in (None, 0, -5, "150", 150.5, True):
            with self.assertRaises(ValidationError):
                place_bid(self.store, self.auction["id"], self.bidder["id"], amount)
        self.assertEqual(self.bid_count(), 0)

    def test_self_bid_checked_before_amount(self):
        with self.assertRaises(SelfBidError):
            place_bid(self.store, self.auction["id"], self.seller["id"], None)


class ConcurrentBiddingTestCase(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.seller = make_user(self.store, 'rajpatel')
        self.auction = create_auction(self.store, self.seller["id"], auction_payload(min_price=None))
        self.bidders = [make_user(self.store, f"bidder{i}") for i in range(8)]

    def run_concurrently(self, amounts):
        barrier = threading.Barrier(len(amounts))
        outcomes = []

        def attempt(bidder, amount):
            barrier.wait()
            try:
                place_bid(self.store, self.auction["id"], bidder["id"], amount)
                outcomes.append("admitted")
            except BidTooLowError:
                outcomes.append("too_low")

        threads = [threading.Thread(target=attempt, args=(b, a)) for b, a in zip(self.bidders, amounts)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return outcomes

    def test_equal_concurrent_bids_admit_exactly_one(self):
        outcomes = self.run_concurrently([150] * len(self.bidders))

        self.assertEqual(outcomes.count("admitted"), 1)
        self.assertEqual(outcomes.count("too_low"), len(self.bidders) - 1)
        self.assertEqual(len(self.store.get_bids_by_auction(self.auction["id"])), 1)

    def test_admitted_bids_strictly_increase(self):
        self.run_concurrently([100 + i * 7 for i in range(len(self.bidders))])

        bids = sorted(self.store.get_bids_by_auction(self.auction["id"]), key=lambda b: b["id"])
        amounts = [b["amount"] for b in bids]
        self.assertEqual(amounts, sorted(set(amounts)))
