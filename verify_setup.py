#!/usr/bin/env python3
"""
Check that the Shopware dashboard can run against the configured shop.
Run this after creating an integration (Access Key ID + Secret) in the Shopware admin.
"""

import importlib
import os
import sys

from connectors.shopware_connector import AuthenticationError, ShopConfig, ShopwareClient
from settings import DashboardSettings

REQUIRED_ENV = ["SHOPWARE_CLIENT_ID", "SHOPWARE_CLIENT_SECRET"]
REQUIRED_PACKAGES = {
    "requests": "requests",
    "pandas": "pandas",
    "numpy": "numpy",
    "streamlit": "streamlit",
    "plotly": "plotly",
    "cryptography": "cryptography",
    "keyring": "keyring",
    "python-dateutil": "dateutil",
}


def _mask(value: str) -> str:
    return value[:4] + "..." + value[-4:] if len(value) > 10 else "***"


def check_environment() -> bool:
    """Check that the integration credentials are set"""
    print("🔍 Checking environment variables...")
    missing = []
    for key in REQUIRED_ENV:
        value = os.environ.get(key)
        if value:
            print(f"  ✅ {key}: {_mask(value)}")
        else:
            print(f"  ❌ {key}: NOT SET")
            missing.append(key)
    print(f"  ℹ️  SHOPWARE_URL: {DashboardSettings.from_env().shop_url}")

    if missing:
        print(f"\n❌ Missing required variables: {', '.join(missing)}")
        return False
    print("\n✅ All environment variables set!")
    return True


def check_packages() -> bool:
    """Check if required packages are installed"""
    print("\n🔍 Checking required packages...")
    missing = []
    for dist, module in REQUIRED_PACKAGES.items():
        try:
            importlib.import_module(module)
            print(f"  ✅ {dist}")
        except ImportError:
            print(f"  ❌ {dist}: NOT INSTALLED")
            missing.append(dist)

    if missing:
        print(f"\n❌ Missing packages: {', '.join(missing)}")
        print(f"   Run: pip install {' '.join(missing)}")
        return False
    print("\n✅ All packages installed!")
    return True


def check_token_endpoint(settings: DashboardSettings) -> bool:
    """Request a token with the configured integration"""
    print("\n🔍 Checking Shopware token endpoint...")
    client_id = os.environ.get("SHOPWARE_CLIENT_ID")
    client_secret = os.environ.get("SHOPWARE_CLIENT_SECRET")
    if not client_id or not client_secret:
        print("  ⏭️  Skipped (no credentials)")
        return False

    client = ShopwareClient(
        ShopConfig(url=settings.shop_url, client_id=client_id, client_secret=client_secret),
        timeout=settings.request_timeout,
    )
    try:
        client.authenticate()
        print(f"  ✅ Token issued by {settings.shop_url}")
        return True
    except AuthenticationError as e:
        cause = e.__cause__
        print(f"  ❌ {e}" + (f" ({cause})" if cause else ""))
        return False
    finally:
        client.close()


def main() -> int:
    print("=" * 60)
    print("Shopware Dashboard Setup Verification")
    print("=" * 60)

    settings = DashboardSettings.from_env()
    checks = [
        check_environment(),
        check_packages(),
        check_token_endpoint(settings),
    ]

    print("\n" + "=" * 60)
    if all(checks):
        print("✅ ALL CHECKS PASSED!")
        print("\nStart the dashboard with: streamlit run app_dashboard.py")
        print("=" * 60)
        return 0
    print("❌ SOME CHECKS FAILED")
    print("\nFix the issues above and run this script again")
    print("=" * 60)
    return 1


if __name__ == "__main__":
    sys.exit(main())
