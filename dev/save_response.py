#!/usr/bin/env python3
import json
import os
import argparse

try:
    import requests
except ImportError:  # pragma: no cover - requests may not be installed
    print("The 'requests' library is required. Install with 'pip install requests'.")
    raise


def main():
    parser = argparse.ArgumentParser(description="Call the payroll API and save the response to dev/result.json")
    parser.add_argument("url", nargs="?", default="http://localhost:8000/api/payroll", help="Target URL")
    parser.add_argument("body", nargs="?", help="JSON file to send as the request body")
    parser.add_argument("--method", default=None, help="HTTP method (default: POST with a body, GET without)")
    args = parser.parse_args()

    payload = None
    if args.body:
        with open(args.body, encoding="utf-8") as fp:
            payload = json.load(fp)

    method = args.method or ("POST" if payload is not None else "GET")
    resp = requests.request(method.upper(), args.url, json=payload, timeout=30)

    try:
        data = resp.json()
    except ValueError:
        data = resp.text
    if not resp.ok:
        print(f"{method.upper()} {args.url} returned {resp.status_code}: {data}")
    resp.raise_for_status()

    os.makedirs("dev", exist_ok=True)
    path = os.path.join("dev", "result.json")
    with open(path, "w", encoding="utf-8") as f:
        if isinstance(data, (dict, list)):
            json.dump(data, f, ensure_ascii=False, indent=2)
        else:
            f.write(str(data))
    print(f"API response from {args.url} saved to {path}")


if __name__ == "__main__":
    main()
