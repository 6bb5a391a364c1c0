"""
Print the SHA-256 hash of a PIN, for ADMIN_PIN_HASH in static PIN mode:
  python -m app.scripts.hash_pin 12345678
"""
import argparse
import sys

from app.core.security import hash_pin, is_valid_pin


def main() -> int:
    parser = argparse.ArgumentParser(description="Hash an 8-digit PIN for ADMIN_PIN_HASH.")
    parser.add_argument("pin", help="Exactly 8 digits")
    args = parser.parse_args()
    if not is_valid_pin(args.pin):
        print("PIN must be exactly 8 digits.", file=sys.stderr)
        return 1
    print(hash_pin(args.pin))
    return 0


if __name__ == "__main__":
    sys.exit(main())
