#!/usr/bin/env python
"""
Smoke test: validate the store config and run one ripening without pytest.

Run with:
    python -m tests.smoke_validate

This ensures validation can run in CI even before pytest is installed,
catching bad YAML/config as early as possible.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def main() -> int:
    """Run config validation and a one-seed ripening, return exit code."""
    print("=" * 60)
    print("Smoke Test: Karmic Store")
    print("=" * 60)

    try:
        from dharma.karma.config import load_config_from_yaml
        from dharma.karma.scheduling import ManualScheduler
        from dharma.karma.seeds import immediate_karma, wholesome_action
        from dharma.karma.store import KarmicStore

        print("\n1. Loading config/karma_defaults.yaml...")
        config = load_config_from_yaml(project_root / "config" / "karma_defaults.yaml")
        print(f"   PASS: max_seeds={config.max_seeds}, time_scale={config.time_scale}")

        print("\n2. Planting and ripening one immediate seed...")
        scheduler = ManualScheduler()
        store = KarmicStore(config=config, scheduler=scheduler)
        seed = store.plant(immediate_karma(wholesome_action("smoke offering", intensity=10)))
        manifestation = store.force_ripen(seed.id)
        if manifestation is None:
            print("   FAIL: force_ripen produced nothing", file=sys.stderr)
            return 1
        print(f"   PASS: {manifestation.polarity} (intensity {manifestation.intensity})")
        store.dispose()

        print("\n" + "=" * 60)
        print("SMOKE TEST PASSED")
        print("=" * 60)
        return 0

    except (FileNotFoundError, ValueError) as e:
        print(f"\nVALIDATION FAILED:\n{e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"\nUNEXPECTED ERROR:\n{e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
