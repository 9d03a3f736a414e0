"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    The foundational value types for currency translation: Currency, Money
    and ExchangeRate.  They keep amounts and currencies paired so a rate is
    only ever applied to money in its source currency.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    No outward dependencies except backoffice_kernel.domain.currency.

Invariants enforced:
    - Amounts and rates are Decimal, never float.
    - Currency codes are validated ISO 4217 codes at construction time.
    - A rate converts only money in its from_currency.

Failure modes:
    - ValueError on construction with invalid amounts, currencies, or rates.
    - TypeError when a float or unsupported type reaches Money.
    - ValueError when a rate is applied to money in another currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from backoffice_kernel.domain.currency import CurrencyRegistry


def to_decimal(value: Decimal | str | int, field_name: str = "value") -> Decimal:
    """Coerce str/int input to Decimal, rejecting floats outright."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"{field_name} must be Decimal, str or int, got {type(value).__name__}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {field_name}: {value!r}") from e


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter ISO 4217 code, normalized to uppercase on
        construction.  Invalid codes are rejected immediately.
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if isinstance(self.code, str) else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency; they are never separated.

    Guarantees:
        - Immutable and hashable.
        - The amount is a Decimal; floats never reach it.

    Non-goals:
        - Does NOT perform currency conversion (use ExchangeRate.convert).
        - Does NOT round.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """Factory accepting Decimal/str/int amounts and code or Currency."""
        return cls(amount=to_decimal(amount, "amount"), currency=currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """
    Exchange rate between two currencies.

    Contract:
        1 unit of from_currency = rate units of to_currency.
        The rate must be a positive Decimal.
    """

    from_currency: Currency
    to_currency: Currency
    rate: Decimal

    def __post_init__(self) -> None:
        if isinstance(self.from_currency, str):
            object.__setattr__(self, "from_currency", Currency(self.from_currency))
        if isinstance(self.to_currency, str):
            object.__setattr__(self, "to_currency", Currency(self.to_currency))

        object.__setattr__(self, "rate", to_decimal(self.rate, "exchange rate"))

        if self.rate <= Decimal("0"):
            raise ValueError(f"Exchange rate must be positive: {self.rate}")

    @classmethod
    def of(
        cls,
        from_currency: str | Currency,
        to_currency: str | Currency,
        rate: Decimal | str | int,
    ) -> ExchangeRate:
        return cls(from_currency=from_currency, to_currency=to_currency, rate=rate)

    @classmethod
    def identity(cls, currency: str | Currency) -> ExchangeRate:
        """Rate of exactly 1 from a currency to itself."""
        return cls(from_currency=currency, to_currency=currency, rate=Decimal("1"))

    def convert(self, money: Money) -> Money:
        """
        Convert money from from_currency to to_currency (unrounded).

        Raises:
            ValueError: If money currency doesn't match from_currency.
        """
        if money.currency != self.from_currency:
            raise ValueError(
                f"Money currency {money.currency} doesn't match "
                f"rate from_currency {self.from_currency}"
            )
        return Money(amount=money.amount * self.rate, currency=self.to_currency)

    def __str__(self) -> str:
        return f"{self.from_currency}/{self.to_currency} = {self.rate}"
