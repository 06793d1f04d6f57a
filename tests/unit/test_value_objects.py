"""
Unit tests for domain value objects.
"""

import pytest
from decimal import Decimal

from domain.value_objects import Symbol, Price, Quantity, Money, to_decimal


class TestToDecimal:
    """Test Decimal coercion."""

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_strings_and_ints(self):
        assert to_decimal(" 12.5 ") == Decimal("12.5")
        assert to_decimal(7) == Decimal("7")

    def test_rejects_garbage(self):
        with pytest.raises(ValueError, match="Not a number"):
            to_decimal("abc")

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError, match="finite"):
            to_decimal(float("nan"))
        with pytest.raises(ValueError, match="finite"):
            to_decimal("Infinity")

    def test_rejects_booleans(self):
        with pytest.raises(TypeError):
            to_decimal(True)


class TestSymbol:
    """Test Symbol value object."""

    def test_symbol_creation(self):
        """Test basic symbol creation."""
        symbol = Symbol("SOL", "Solana")
        assert symbol.ticker == "SOL"
        assert symbol.network == "solana"
        assert str(symbol) == "SOL:solana"

    def test_symbol_without_network(self):
        symbol = Symbol("USDC")
        assert symbol.network is None
        assert str(symbol) == "USDC"

    def test_symbol_case_is_preserved(self):
        """Token tickers are case sensitive (mSOL is not MSOL)."""
        assert Symbol("mSOL").ticker == "mSOL"
        assert Symbol(" RAY ").ticker == "RAY"

    def test_symbol_from_string(self):
        symbol = Symbol.from_string("SOL:solana")
        assert symbol.ticker == "SOL"
        assert symbol.network == "solana"

        symbol = Symbol.from_string("ORCA")
        assert symbol.ticker == "ORCA"
        assert symbol.network is None

    def test_symbol_validation(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            Symbol("")

        with pytest.raises(ValueError, match="too long"):
            Symbol("X" * 21)

        with pytest.raises(ValueError, match="cannot contain"):
            Symbol("SOL:")

    def test_symbol_immutability(self):
        symbol = Symbol("SOL")
        with pytest.raises(AttributeError):
            symbol.ticker = "RAY"


class TestPrice:
    """Test Price value object."""

    def test_price_creation(self):
        price = Price(Decimal("100.50"))
        assert price.value == Decimal("100.50")
        assert str(price) == "$100.50"

    def test_price_from_float(self):
        price = Price(100.50)
        assert price.value == Decimal("100.5")

    def test_price_validation(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            Price(-10.50)

    def test_price_arithmetic(self):
        price1 = Price(100.50)
        price2 = Price(50.25)

        assert (price1 + price2).value == Decimal("150.75")
        assert (price1 - price2).value == Decimal("50.25")
        assert (price1 * 2).value == Decimal("201.00")
        assert (price1 / 2).value == Decimal("50.25")

    def test_price_comparison(self):
        price1 = Price(100.50)
        price2 = Price(50.25)
        price3 = Price(100.50)

        assert price1 > price2
        assert price2 < price1
        assert price1 == price3
        assert price1 >= price3
        assert price2 <= price1

    def test_price_and_quantity_are_not_equal(self):
        assert Price(5) != Quantity(5)


class TestQuantity:
    """Test Quantity value object."""

    def test_quantity_creation(self):
        qty = Quantity(Decimal("100"))
        assert qty.value == Decimal("100")
        assert str(qty) == "100"

    def test_quantity_validation(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            Quantity(-100)

    def test_quantity_cannot_go_negative_by_subtraction(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            Quantity(1) - Quantity(2)

    def test_quantity_arithmetic(self):
        qty1 = Quantity(100)
        qty2 = Quantity(50)

        assert (qty1 + qty2).value == Decimal("150")
        assert (qty1 - qty2).value == Decimal("50")
        assert (qty1 * 2).value == Decimal("200")

    def test_zero(self):
        assert Quantity.zero().is_zero
        assert not Quantity("0.0001").is_zero


class TestMoney:
    """Test Money value object."""

    def test_money_creation(self):
        money = Money(Decimal("1000.50"), "USD")
        assert money.amount == Decimal("1000.50")
        assert money.currency == "USD"
        assert str(money) == "1000.50 USD"

    def test_money_default_currency(self):
        assert Money(1000).currency == "USD"

    def test_money_currency_normalization(self):
        assert Money(1000, "usdc").currency == "USDC"

    def test_money_validation(self):
        with pytest.raises(ValueError, match="3 to 5 characters"):
            Money(1000, "US")

    def test_money_arithmetic_same_currency(self):
        money1 = Money(1000, "USD")
        money2 = Money(500, "USD")

        result = money1 + money2
        assert result.amount == Decimal("1500")
        assert result.currency == "USD"

        result = money2 - money1
        assert result.amount == Decimal("-500")
        assert result.is_negative

    def test_money_arithmetic_different_currency(self):
        money1 = Money(1000, "USD")
        money2 = Money(500, "EUR")

        with pytest.raises(ValueError, match="Cannot add USD and EUR"):
            money1 + money2

        with pytest.raises(ValueError, match="Cannot subtract USD and EUR"):
            money1 - money2

    def test_money_multiplication_division(self):
        money = Money(1000, "USD")

        assert (money * 2).amount == Decimal("2000")
        assert (money / 2).amount == Decimal("500")

    def test_money_comparison(self):
        money1 = Money(1000, "USD")
        money2 = Money(500, "USD")

        assert money1 > money2
        assert money2 < money1
        assert money1 == Money(1000, "USD")

        with pytest.raises(ValueError, match="Cannot compare USD and EUR"):
            money1 > Money(500, "EUR")

    def test_total_and_percentage(self):
        total = Money.total([Money(100), Money(-40), Money("2.5")])
        assert total.amount == Decimal("62.5")
        assert Money.total([]).is_zero

        assert Money(50).percentage_of(Money(200)) == Decimal("25")
        assert Money(50).percentage_of(Money(0)) == Decimal("0")

    def test_money_properties(self):
        assert Money(1000).is_positive
        assert Money(-500).is_negative
        zero_money = Money(0)
        assert zero_money.is_zero
        assert not zero_money.is_positive
        assert not zero_money.is_negative
