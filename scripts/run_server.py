#!/usr/bin/env python3
"""
Start the forms demo service from a checkout.

Usage:
    python scripts/run_server.py [--host 127.0.0.1] [--port 8080]

Then point the bridge at it:
    FORMS_BASE_URL=http://127.0.0.1:8080 python -m forms_demo.bridge
"""
import sys
from pathlib import Path

# Add project root to Python path so forms_demo imports without installing
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

if __name__ == "__main__":
    try:
        from forms_demo.gateway.app import main
    except ImportError as e:
        print(f"Import error: {e}")
        print("\nMake sure you've installed dependencies:")
        print("   pip install -e .")
        sys.exit(1)

    raise SystemExit(main())
