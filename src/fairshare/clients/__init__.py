"""Clients for external collaborators."""

from .exchange_rates import ExchangeRateClient

__all__ = ["ExchangeRateClient"]
