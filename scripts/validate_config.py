#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lifecycle_app.config.loader import ConfigLoader, build_config
from lifecycle_app.config.validation import ConfigValidator


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    loader = ConfigLoader.create(config_dir)

    print(f"🔍 Validating lifecycle configuration in {loader.config_dir}...")

    config = loader.merge_config()
    errors = ConfigValidator.validate_config(config)

    if errors:
        print(f"❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        sys.exit(1)

    typed = build_config(config)
    print(f"✅ Tick interval: {typed.timer.tick_interval_seconds}s")
    print(f"✅ Settle delay: {typed.activation.settle_delay_seconds}s")
    for name in typed.routes.__dataclass_fields__:
        print(f"✅ Route {name}: {getattr(typed.routes, name)}")

    print("\n🎉 Configuration validation passed!")
    sys.exit(0)


if __name__ == "__main__":
    main()
