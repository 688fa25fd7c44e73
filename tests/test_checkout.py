"""Checkout calculator: cent-exact totals, used by cart totals and order creation."""

from decimal import Decimal

from storefront.services.checkout import calc_totals, to_minor_units, to_money


def test_totals_with_default_tax_and_free_shipping():
    totals = calc_totals([{"price": 100, "quantity": 2}, {"price": 100, "quantity": 3}])

    assert totals == {
        "items_price": Decimal("500.00"),
        "shipping_price": Decimal("0.00"),
        "tax_price": Decimal("50.00"),
        "total_price": Decimal("550.00"),
    }


def test_tax_rounds_half_up_to_cents():
    totals = calc_totals([{"price": 19.99, "quantity": 3}])

    assert totals["items_price"] == Decimal("59.97")
    assert totals["tax_price"] == Decimal("6.00")  # 5.997
    assert totals["total_price"] == Decimal("65.97")


def test_float_prices_do_not_drift():
    totals = calc_totals([{"price": 0.1, "quantity": 3}])

    assert totals["items_price"] == Decimal("0.30")
    assert totals["tax_price"] == Decimal("0.03")
    assert totals["total_price"] == Decimal("0.33")


def test_overrides_for_tax_rate_and_shipping():
    totals = calc_totals(
        [{"price": "10.00", "quantity": 1}],
        tax_rate=Decimal("0.18"),
        shipping_price=Decimal("4.99"),
    )

    assert totals["tax_price"] == Decimal("1.80")
    assert totals["shipping_price"] == Decimal("4.99")
    assert totals["total_price"] == Decimal("16.79")


def test_empty_lines_total_zero():
    totals = calc_totals([])

    assert totals["items_price"] == Decimal("0.00")
    assert totals["total_price"] == Decimal("0.00")


def test_same_input_same_output():
    lines = [{"price": 12.345, "quantity": 7}, {"price": 3.3, "quantity": 1}]

    assert calc_totals(lines) == calc_totals([dict(l) for l in lines])


def test_minor_units():
    assert to_minor_units(Decimal("550.00"), "usd") == 55000
    assert to_minor_units(Decimal("65.97"), "EUR") == 6597
    assert to_minor_units(Decimal("550"), "jpy") == 550


def test_to_money():
    assert to_money("2.005") == Decimal("2.01")
    assert to_money(3) == Decimal("3.00")
