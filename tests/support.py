from datetime import timedelta

from farm_auctions.models import utcnow


def hours_from_now(hours):
    return utcnow() + timedelta(hours=hours)


def make_user(store, username, **extra):
    data = {
        "username": username,
        "password_hash": "unused",
        "name": username.title(),
        "phone": None,
        "email": f"{username}@example.com",
        "role": "farmer",
        "location": "Nagpur, Maharashtra",
        "profile_pic": f"https://example.com/{username}.jpg",
    }
    data.update(extra)
    return store.create_user(data)


def auction_payload(**overrides):
    payload = {
        "title": "Fresh wheat, 50 quintal lot",
        "crop_name": "Wheat",
        "quantity": 50,
        "unit": "quintal",
        "min_price": 100,
        "end_time": hours_from_now(48).isoformat() + "Z",
        "description": "Harvested last week",
    }
    payload.update(overrides)
    return payload
