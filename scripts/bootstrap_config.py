#!/usr/bin/env python3
"""
Quick setup script for Album Log
"""

import os
import sys
import shutil
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent


def check_python_version():
    """Check if Python version is 3.8+"""
    if sys.version_info < (3, 8):
        print("❌ Error: Python 3.8 or higher is required")
        print(f"   Current version: {sys.version}")
        return False
    print(f"✅ Python version OK: {sys.version.split()[0]}")
    return True


def setup_config(root=REPO_ROOT):
    """Create configuration file from template"""
    config_template = Path(root) / "config.template.py"
    config_file = Path(root) / "config.py"

    if config_file.exists():
        print(f"⚠️  Configuration file {config_file.name} already exists")
        return True

    if not config_template.exists():
        print(f"❌ Template file {config_template.name} not found")
        return False

    try:
        shutil.copy2(config_template, config_file)
        print(f"✅ Created configuration file: {config_file.name}")
        print(f"   📝 Please edit {config_file.name} with your Last.fm and datastore settings")
        return True
    except OSError as e:
        print(f"❌ Failed to create config file: {e}")
        return False


def main():
    print("🎵 Album Log Setup")
    print("=" * 40)

    if not check_python_version():
        sys.exit(1)

    print("\n📦 Please install the project before running setup:")
    print("   python -m pip install -e .")

    if not setup_config():
        sys.exit(1)

    print("\n" + "=" * 40)
    print("🎉 Setup complete!")
    print("\n📋 Next steps:")
    print("1. Edit config.py with your Last.fm API key and datastore settings")
    print("2. Start the web UI: python webui/app.py")
    print("3. Import a spreadsheet: python scripts/import_library.py my_albums.xlsx --dry-run")
    if os.environ.get("LIBRARY_USER_ID") is None:
        print("\nℹ️  LIBRARY_USER_ID can also be supplied as an environment variable")


if __name__ == "__main__":
    main()
