#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from procure_app.config.loader import ConfigLoader
from procure_app.config.validation import ConfigValidator, ValidationError


def report_errors(label: str, errors: List[ValidationError]) -> bool:
    """Print validation errors for ``label``; True if there were none."""
    if errors:
        print(f"❌ {label}: {len(errors)} validation errors")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        return False

    print(f"✅ {label} is valid")
    return True


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    loader = ConfigLoader.create(config_dir)
    print(f"🔍 Validating procurement configuration in {loader.config_dir}...")

    all_valid = report_errors(
        "engine.yaml", ConfigValidator.validate_config(loader.merge_config())
    )

    goods = loader.load_goods_config()
    all_valid = report_errors(
        f"goods.yaml ({len(goods)} goods)", ConfigValidator.validate_product_overrides(goods)
    ) and all_valid

    # Per-call overrides go through the same checks
    sample_overrides = {
        "retry": {"max_attempts": 3},
        "execution": {"max_reassignment_passes": 1},
    }
    all_valid = report_errors(
        "sample call overrides",
        ConfigValidator.validate_config(loader.merge_config(sample_overrides))
    ) and all_valid

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
