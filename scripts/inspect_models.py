import asyncio
import json

from capability_router.classifier import classify
from capability_router.config import Settings, load_env_file
from capability_router.router import ModelRouter


async def main():
    load_env_file()
    router = ModelRouter(Settings())
    try:
        await router.start()

        print(f"--- Catalog ({len(router.catalog.all_models)} models) ---")
        for m in router.catalog.all_models:
            print(f"{m.id}: {sorted(t.value for t in classify(m))}")

        print("\n--- Selection ---")
        print(json.dumps(router.get_router_config(), indent=2))
    finally:
        await router.stop()


if __name__ == "__main__":
    asyncio.run(main())
