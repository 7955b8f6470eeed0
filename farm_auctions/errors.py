class AuctionError(Exception):
    """Base for every domain failure reported back to the caller.

    Each subclass maps to one HTTP status and a machine-readable ``reason``.
    Extra keyword arguments end up in the JSON payload as-is.
    """

    status_code = 400
    reason = 'error'

    def __init__(self, message, **payload):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def to_dict(self):
        body = {"error": self.message, "reason": self.reason}
        body.update(self.payload)
        return body


class ValidationError(AuctionError):
    reason = 'validation_error'

    def __init__(self, message, fields=None):
        super().__init__(message, fields=fields or {})
        self.fields = fields or {}


class NotFoundError(AuctionError):
    status_code = 404
    reason = 'not_found'


class AuthorizationError(AuctionError):
    status_code = 403
    reason = 'forbidden'


class SelfBidError(AuctionError):
    reason = 'self_bid'


class AuctionClosedError(AuctionError):
    reason = 'auction_not_active'


class BidTooLowError(AuctionError):
    reason = 'bid_too_low'

    def __init__(self, message, current_highest=None, min_price=None):
        payload = {"currentHighestBid": current_highest}
        if min_price is not None:
            payload["minPrice"] = min_price
        super().__init__(message, **payload)
        self.current_highest = current_highest
        self.min_price = min_price
