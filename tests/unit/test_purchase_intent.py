# tests/unit/test_purchase_intent.py

import pytest

from ethernal_tickets.domain.exceptions import InvalidRequestError
from ethernal_tickets.domain.models import PurchaseIntent, split_price


def _intent(**overrides):
    fields = {
        "account_id": "acct-1",
        "event_id": "EventX",
        "seat_identifiers": ("seat-1", "seat-2"),
        "total_price": 600,
    }
    fields.update(overrides)
    return PurchaseIntent(**fields)


# ---------------------
# VALIDATION
# ---------------------

def test_valid_intent_passes():
    intent = _intent()
    intent.validate()
    assert intent.seat_count == 2


def test_empty_seat_list_rejected():
    with pytest.raises(InvalidRequestError):
        _intent(seat_identifiers=()).validate()


def test_blank_seat_rejected():
    with pytest.raises(InvalidRequestError):
        _intent(seat_identifiers=("seat-1", "  ")).validate()


def test_duplicate_seats_rejected():
    with pytest.raises(InvalidRequestError, match="seat-1"):
        _intent(seat_identifiers=("seat-1", "seat-1")).validate()


def test_negative_price_rejected():
    with pytest.raises(InvalidRequestError):
        _intent(total_price=-1).validate()


def test_bool_price_rejected():
    with pytest.raises(InvalidRequestError):
        _intent(total_price=True).validate()


def test_missing_event_rejected():
    with pytest.raises(InvalidRequestError):
        _intent(event_id=" ").validate()


# ---------------------
# PRICE SPLIT
# ---------------------

def test_even_split():
    assert split_price(600, 2) == [300, 300]


def test_remainder_goes_to_first_ticket():
    shares = split_price(100, 3)
    assert shares == [34, 33, 33]
    assert sum(shares) == 100


def test_zero_total_split():
    assert split_price(0, 4) == [0, 0, 0, 0]


def test_split_requires_seats():
    with pytest.raises(InvalidRequestError):
        split_price(100, 0)


# ---------------------
# SEAT INPUT SHAPES
# ---------------------

def test_set_of_seats_accepted_in_sorted_order():
    intent = _intent(seat_identifiers=frozenset({"seat-2", "seat-1"}))

    intent.validate()

    assert intent.seat_identifiers == ("seat-1", "seat-2")


def test_list_of_seats_coerced_to_tuple():
    intent = _intent(seat_identifiers=["seat-3", "seat-1"])
    assert intent.seat_identifiers == ("seat-3", "seat-1")


def test_single_seat_string_is_one_seat():
    intent = _intent(seat_identifiers="seat-1")
    intent.validate()
    assert intent.seat_count == 1


def test_non_string_seat_rejected():
    with pytest.raises(InvalidRequestError):
        _intent(seat_identifiers=("seat-1", 7)).validate()


def test_duplicates_found_in_long_request():
    seats = tuple(f"seat-{n}" for n in range(5000)) + ("seat-42", "seat-7")

    with pytest.raises(InvalidRequestError, match="seat-42, seat-7"):
        _intent(seat_identifiers=seats).validate()
