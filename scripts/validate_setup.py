"""Validate that the system is properly set up and configured."""

import asyncio
import sys
from pathlib import Path

import httpx

from fulfillment.config import get_settings
from fulfillment.state.manager import StateManager


async def check_python_version() -> bool:
    """Check if Python version is 3.11+."""
    print("Checking Python version...")

    version = sys.version_info
    if version.major < 3 or (version.major == 3 and version.minor < 11):
        print(f"  ❌ Python {version.major}.{version.minor} detected")
        print("  → Python 3.11+ required")
        return False

    print(f"  ✓ Python {version.major}.{version.minor} detected")
    return True


async def check_settings() -> bool:
    """Check that settings load and show the workflow constants in effect."""
    print("\nChecking configuration...")

    if not Path(".env").exists():
        print("  ℹ️  No .env file, using defaults (cp .env.example .env to customize)")

    settings = get_settings()
    print(f"  ✓ Storage backend: {settings.storage_backend}")
    print(f"  ✓ Geocoder: {settings.geocoder}")
    print(
        f"  ✓ Delivery fee: {settings.flat_local_fee}€ in {settings.local_city}, "
        f"+{settings.per_km_rate}€/km elsewhere"
    )
    print(
        f"  ✓ Equipment: from {settings.equipment_threshold} persons, "
        f"{settings.equipment_return_window_hours}h window, "
        f"{settings.equipment_penalty}€ penalty"
    )
    return True


async def check_project_structure() -> bool:
    """Check if all required files exist."""
    print("\nChecking project structure...")

    required_paths = [
        "fulfillment/workflow/status.py",
        "fulfillment/workflow/equipment.py",
        "fulfillment/workflow/pricing.py",
        "fulfillment/workflow/priority.py",
        "fulfillment/workflow/kanban.py",
        "fulfillment/services/orders.py",
        "fulfillment/services/sweep.py",
        "fulfillment/api/routes.py",
        "fulfillment/main.py",
        "pyproject.toml",
    ]

    missing = [path for path in required_paths if not Path(path).exists()]

    if missing:
        print("  ❌ Missing files:")
        for path in missing:
            print(f"     - {path}")
        return False

    print("  ✓ All required files present")
    return True


async def check_redis() -> bool:
    """Check Redis connectivity when it is the configured backend."""
    print("\nChecking Redis...")

    settings = get_settings()
    if settings.storage_backend != "redis":
        print("  ℹ️  In-memory backend configured, skipping")
        return True

    state_manager = StateManager()
    try:
        await state_manager.connect()
        await state_manager.ping()
    except Exception as e:
        print(f"  ❌ Redis not reachable at {settings.redis_url}: {e}")
        return False
    finally:
        await state_manager.disconnect()

    print(f"  ✓ Redis reachable at {settings.redis_url}")
    return True


async def check_api() -> bool:
    """Check whether the API answers (not a failure if it is not started)."""
    print("\nChecking API...")

    settings = get_settings()
    url = f"http://localhost:{settings.api_port}/health"
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(url, timeout=5.0)
    except httpx.HTTPError:
        print("  ℹ️  API not running (python -m fulfillment.main)")
        return True

    if response.status_code == 200:
        print("  ✓ API is responding")
    else:
        print(f"  ⚠️  API returned status {response.status_code}")
    return True


async def main() -> None:
    """Run all validation checks."""
    print("\n" + "=" * 60)
    print("  Catering Fulfillment - Setup Validation")
    print("=" * 60 + "\n")

    checks = [
        ("Python Version", check_python_version),
        ("Configuration", check_settings),
        ("Project Structure", check_project_structure),
        ("Redis", check_redis),
        ("API", check_api),
    ]

    results = []
    for name, check in checks:
        try:
            result = await check()
            results.append((name, result))
        except Exception as e:
            print(f"  ❌ Error during {name} check: {e}")
            results.append((name, False))

    print("\n" + "=" * 60)
    print("  Validation Summary")
    print("=" * 60)

    all_passed = True
    for name, passed in results:
        status = "✓" if passed else "❌"
        print(f"  {status} {name}")
        if not passed:
            all_passed = False

    print("=" * 60)

    if all_passed:
        print("\n✅ All checks passed! System is ready.")
        print("\nNext steps:")
        print("  1. Seed data: python scripts/seed_data.py")
        print("  2. Start API: python -m fulfillment.main")
        print("  3. View board: curl http://localhost:8000/api/v1/kanban")
    else:
        print("\n❌ Some checks failed. Please fix the issues above.")
        sys.exit(1)

    print()


if __name__ == "__main__":
    asyncio.run(main())
