#!/usr/bin/env python
"""
End-to-End Demo Script

Walks one account through the full flow against a running backend:
1. Register (or log in if the account already exists)
2. Enroll: open the camera for a few seconds, then complete enrollment
3. Log in again and run biometric verification with the liveness check

Usage:
    # Start the backend first:
    uvicorn api.app:app --port 3001

    python scripts/demo_flow.py --email demo@example.com --password password123

    # Enrollment only, no verification
    python scripts/demo_flow.py --skip-verify

    # Use a different camera
    python scripts/demo_flow.py --device 1
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import get_widget_config
from core.liveness import LivenessConfig
from frontend.api_client import APIClient, APIError
from frontend.auth_flow import BiometricFlow
from frontend.biometric_widget import BiometricWidget, WidgetConfig


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Biometric access end-to-end demo")
    parser.add_argument("--base-url", default="http://localhost:3001", help="Backend base URL")
    parser.add_argument("--email", default="demo@example.com")
    parser.add_argument("--password", default="password123")
    parser.add_argument("--device", type=int, default=None, help="Camera device id")
    parser.add_argument("--enroll-seconds", type=float, default=5.0,
                        help="How long to keep the camera open during enrollment")
    parser.add_argument("--skip-verify", action="store_true", help="Stop after enrollment")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    client = APIClient(base_url=args.base_url)
    if not client.check_backend_available():
        print(f"Backend not reachable at {args.base_url}")
        return 1

    widget_config = dict(get_widget_config())
    if args.device is not None:
        widget_config["device_id"] = args.device
    widget = BiometricWidget(WidgetConfig.from_config(widget_config))
    flow = BiometricFlow(client, widget, LivenessConfig.from_config())

    print("=" * 60)
    print(" Account")
    print("=" * 60)
    try:
        data = client.register(args.email, args.password)
        print(f"Registered {data['user']['email']} (enrolled={data['user']['enrolled']})")
    except APIError as e:
        print(f"Register: {e.message}; logging in instead")
        data = client.login(args.email, args.password)
        print(f"Logged in {data['user']['email']} (enrolled={data['user']['enrolled']})")

    user = client.current_user()

    if not user["enrolled"]:
        print("=" * 60)
        print(" Enrollment")
        print("=" * 60)
        result = flow.begin_enrollment(user["id"])
        if not result.success:
            print(result.message)
            return 1
        print(f"Look at the camera for {args.enroll_seconds:.0f} seconds...")
        time.sleep(args.enroll_seconds)
        result = flow.complete_enrollment()
        print(result.message)
        if not result.success:
            return 1

    if args.skip_verify:
        return 0

    print("=" * 60)
    print(" Verification")
    print("=" * 60)
    data = client.login(args.email, args.password)
    print(f"Logged in (enrolled={data['user']['enrolled']}). Keep your face visible for ~10 seconds...")

    result = asyncio.run(flow.verify(data["user"]["id"]))
    if result.liveness is not None:
        print(f"Liveness: passed={result.liveness.passed}, attempts={result.liveness.attempts}, "
              f"valid={result.liveness.valid_samples}")
    print(("✓ " if result.success else "✗ ") + result.message)
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
