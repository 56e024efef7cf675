"""
Settings — engine configuration.

Defaults mirror the storefront's production values. Override from the
environment (or a .env file) with CARTFLOW_* variables:

    from cartflow.settings import Settings

    settings = Settings.from_env()
    settings = Settings().with_merge_policy("discard")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

HANOI_INNER_DISTRICTS: tuple[str, ...] = (
    "Ba Đình",
    "Hoàn Kiếm",
    "Tây Hồ",
    "Long Biên",
    "Cầu Giấy",
    "Đống Đa",
    "Hai Bà Trưng",
    "Hoàng Mai",
    "Thanh Xuân",
    "Nam Từ Liêm",
)


@dataclass(frozen=True, slots=True)
class Settings:
    """
    Immutable engine settings.

    Note: merge_policy is a string here so it can round-trip through env vars;
    cartflow.cart.MergePolicy parses it.
    """

    vat_divisor: Decimal = Decimal("1.1")
    low_stock_threshold: int = 5
    fallback_shipping_fee: int = 50_000
    local_cart_key: str = "aims_cart_items"
    storage_url: str = "sqlite+aiosqlite:///cartflow.db"
    merge_policy: str = "union"
    rush_city: str = "Hà Nội"
    rush_districts: tuple[str, ...] = HANOI_INNER_DISTRICTS

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> Settings:
        """
        Build settings from CARTFLOW_* environment variables.

        A .env file is loaded first (without overriding real env vars).
        """
        load_dotenv(env_file)
        defaults = cls()

        districts = os.getenv("CARTFLOW_RUSH_DISTRICTS")
        return cls(
            vat_divisor=Decimal(
                os.getenv("CARTFLOW_VAT_DIVISOR", str(defaults.vat_divisor))
            ),
            low_stock_threshold=int(
                os.getenv("CARTFLOW_LOW_STOCK_THRESHOLD", str(defaults.low_stock_threshold))
            ),
            fallback_shipping_fee=int(
                os.getenv(
                    "CARTFLOW_FALLBACK_SHIPPING_FEE", str(defaults.fallback_shipping_fee)
                )
            ),
            local_cart_key=os.getenv("CARTFLOW_LOCAL_CART_KEY", defaults.local_cart_key),
            storage_url=os.getenv("CARTFLOW_STORAGE_URL", defaults.storage_url),
            merge_policy=os.getenv("CARTFLOW_MERGE_POLICY", defaults.merge_policy),
            rush_city=os.getenv("CARTFLOW_RUSH_CITY", defaults.rush_city),
            rush_districts=(
                tuple(d.strip() for d in districts.split(",") if d.strip())
                if districts
                else defaults.rush_districts
            ),
        )

    def with_merge_policy(self, policy: str) -> Settings:
        return replace(self, merge_policy=policy)

    def with_fallback_fee(self, fee: int) -> Settings:
        return replace(self, fallback_shipping_fee=fee)


__all__ = ("Settings", "HANOI_INNER_DISTRICTS")
