from flask import Blueprint, jsonify, request
from werkzeug.security import generate_password_hash, check_password_hash
import logging

from farm_auctions.bidding import place_bid
from farm_auctions.errors import NotFoundError, ValidationError
from farm_auctions.lifecycle import close_expired_auctions, create_auction, set_bid_status, set_status
from farm_auctions.utils import get_store, issue_token, require_auth
from farm_auctions.views import detail, public_user, render_bid, summarize

logger = logging.getLogger(__name__)

main = Blueprint('main', __name__)

PROFILE_FIELDS = ('name', 'phone', 'email', 'role', 'location', 'profile_pic')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid input", {"body": "expected a JSON object"})
    return data


def _get_auction_or_404(store, auction_id):
    auction = store.get_auction(auction_id)
    if auction is None:
        raise NotFoundError("Auction not found")
    return auction


@main.route('/')
def home():
    return jsonify({"message": "Farm auctions backend running"})


# Register a new user and hand back a token
@main.route('/auth/register', methods=['POST'])
def register_user():
    data = _json_body()
    store = get_store()

    missing = [field for field in ('username', 'password')
               if not isinstance(data.get(field), str) or not data[field].strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}",
                              {field: "is required" for field in missing})

    if store.get_user_by_username(data['username']):
        return jsonify({"error": "Username already exists"}), 400
    if data.get('phone') and store.get_user_by_phone(data['phone']):
        return jsonify({"error": "Phone number already registered"}), 400

    user_data = {field: data.get(field) for field in PROFILE_FIELDS}
    user_data['role'] = user_data['role'] or 'farmer'
    user_data['username'] = data['username']
    user_data['password_hash'] = generate_password_hash(data['password'], method='pbkdf2:sha256')
    user = store.create_user(user_data)
    logger.info(f"User {user['id']} registered as {user['username']}")

    return jsonify({"user": public_user(user), "token": issue_token(user['id'])}), 201


@main.route('/auth/login', methods=['POST'])
def login_user():
    data = _json_body()
    credentials = (data.get('username'), data.get('password'))
    if not all(isinstance(value, str) and value for value in credentials):
        return jsonify({"error": "Username and password are required"}), 400

    user = get_store().get_user_by_username(data['username'])
    if not user or not check_password_hash(user['password_hash'], data['password']):
        logger.info(f"Failed login for {data['username']}")
        return jsonify({"error": "Invalid credentials"}), 401

    return jsonify({"user": public_user(user), "token": issue_token(user['id'])}), 200


@main.route('/auth/me', methods=['GET'])
@require_auth
def current_user():
    return jsonify(public_user(request.user))


# Fetch all auctions, optionally filtered by status and seller
@main.route('/auctions', methods=['GET'])
def get_auctions():
    store = get_store()
    criteria = {}
    if request.args.get('status'):
        criteria['status'] = request.args['status']
    if request.args.get('seller_id'):
        seller_id = request.args.get('seller_id', type=int)
        if seller_id is None:
            raise ValidationError("Invalid input", {"seller_id": "must be an integer"})
        criteria['seller_id'] = seller_id

    auctions = store.get_auctions(**criteria)
    return jsonify([summarize(store, auction) for auction in auctions])


@main.route('/auctions/<int:auction_id>', methods=['GET'])
def get_auction(auction_id):
    store = get_store()
    return jsonify(detail(store, _get_auction_or_404(store, auction_id)))


@main.route('/auctions', methods=['POST'])
@require_auth
def create_auction_route():
    store = get_store()
    auction = create_auction(store, request.user_id, _json_body())
    return jsonify(summarize(store, auction)), 201


@main.route('/auctions/<int:auction_id>', methods=['PUT'])
@require_auth
def update_auction(auction_id):
    store = get_store()
    data = _json_body()
    auction = set_status(store, auction_id, request.user_id, data.get('status'))
    return jsonify(summarize(store, auction))


# Post a bid
@main.route('/auctions/<int:auction_id>/bids', methods=['POST'])
@require_auth
def place_bid_route(auction_id):
    data = _json_body()
    bid = place_bid(get_store(), auction_id, request.user_id, data.get('amount'))
    return jsonify(bid), 201


@main.route('/auctions/<int:auction_id>/bids/<int:bid_id>', methods=['PUT'])
@require_auth
def update_bid(auction_id, bid_id):
    store = get_store()
    data = _json_body()
    bid = set_bid_status(store, auction_id, bid_id, request.user_id, data.get('status'))
    return jsonify(render_bid(store, bid))


# Bids placed by the authenticated user, newest first
@main.route('/bids/mine', methods=['GET'])
@require_auth
def my_bids():
    store = get_store()
    bids = sorted(store.get_bids_by_bidder(request.user_id), key=lambda b: b['created_at'], reverse=True)
    return jsonify([render_bid(store, bid) for bid in bids])


@main.route('/check-expired', methods=['POST'])
@require_auth
def check_expired():
    closed = close_expired_auctions(get_store())
    return jsonify({
        "message": "Checked for expired auctions",
        "closed": [auction['id'] for auction in closed],
    }), 200
