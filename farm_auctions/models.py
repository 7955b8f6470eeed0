from datetime import datetime, timezone
from enum import Enum

from farm_auctions import db


class AuctionStatus(str, Enum):
    ACTIVE = 'active'
    CLOSED = 'closed'
    CANCELLED = 'cancelled'


class BidStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


def utcnow():
    # naive UTC, matching what the DateTime columns hand back
    return datetime.now(timezone.utc).replace(tzinfo=None)


# User Model
class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(15), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    role = db.Column(db.String(20), default='farmer')
    location = db.Column(db.String(120), nullable=True)
    profile_pic = db.Column(db.String(255), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "password_hash": self.password_hash,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "role": self.role,
            "location": self.location,
            "profile_pic": self.profile_pic,
        }


# Auction Model
class Auction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    crop_name = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    min_price = db.Column(db.Integer, nullable=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(20), nullable=False, default=AuctionStatus.ACTIVE.value)
    description = db.Column(db.Text, nullable=True)

    # Equivalent Raw SQL:
    # CREATE TABLE auction (
    #     id INT AUTO_INCREMENT PRIMARY KEY,
    #     title VARCHAR(200) NOT NULL,
    #     crop_name VARCHAR(120) NOT NULL,
    #     quantity INT NOT NULL,
    #     unit VARCHAR(20) NOT NULL,
    #     min_price INT,
    #     seller_id INT NOT NULL,
    #     end_time DATETIME NOT NULL,
    #     created_at DATETIME NOT NULL,
    #     status VARCHAR(20) NOT NULL DEFAULT 'active',
    #     description TEXT,
    #     FOREIGN KEY (seller_id) REFERENCES user(id)
    # );

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "crop_name": self.crop_name,
            "quantity": self.quantity,
            "unit": self.unit,
            "min_price": self.min_price,
            "seller_id": self.seller_id,
            "end_time": self.end_time,
            "created_at": self.created_at,
            "status": self.status,
            "description": self.description,
        }


# Bid Model
class Bid(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    auction_id = db.Column(db.Integer, db.ForeignKey('auction.id'), nullable=False, index=True)
    bidder_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(20), nullable=False, default=BidStatus.PENDING.value)

    def to_dict(self):
        return {
            "id": self.id,
            "auction_id": self.auction_id,
            "bidder_id": self.bidder_id,
            "amount": self.amount,
            "created_at": self.created_at,
            "status": self.status,
        }
