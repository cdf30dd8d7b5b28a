"""Remove all fulfillment data from Redis (useful for testing)."""

import asyncio

from fulfillment.state.manager import StateManager

KEY_PATTERNS = ["order:*", "menu:*", "orders:*", "lock:*"]


async def reset_all_state() -> None:
    """Delete orders, menus, indexes and locks."""
    print("\n⚠️  WARNING: This will delete ALL orders and menus from Redis!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting state...")

    state_manager = StateManager()
    await state_manager.connect()

    deleted = 0
    for pattern in KEY_PATTERNS:
        keys = await state_manager.scan_keys(pattern)
        await state_manager.delete(*keys)
        deleted += len(keys)

    await state_manager.disconnect()

    print(f"✓ {deleted} keys cleared from Redis\n")


if __name__ == "__main__":
    asyncio.run(reset_all_state())
