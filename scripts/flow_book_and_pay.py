#!/usr/bin/env python3
"""
Complete checkout and settlement flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Tokens are minted locally with the configured JWT secret, the same way the
host application issues them.

Usage:
    python scripts/flow_book_and_pay.py --listing-id <UUID> --guest-id guest-1 --check-in 2026-04-01 --check-out 2026-04-04
    python scripts/flow_book_and_pay.py --listing-id <UUID> --guest-id guest-1 --host-id host-1 \\
        --schedule-date 2026-05-01 --schedule-time 09:00 --participants 2 --gateway manual

Flow (wallet):
    1. Top up guest wallet (as admin)
    2. Quote price
    3. Pay with wallet
    4. Show guest wallet and points

Flow (--gateway manual):
    1. Quote price
    2. Open gateway order
    3. Capture order (booking stays pending)
    4. Confirm booking (as host)
    5. Mark booking paid (as admin)
"""

import argparse
import json
import sys

import httpx

from bookify.core.security import create_access_token

BASE_URL = "http://localhost:8000"


def token_for(user_id: str, role: str) -> str:
    """Mint an access token for a user."""
    return create_access_token(user_id, role)


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=30.0, follow_redirects=True)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def checkout_payload(args) -> dict:
    """Build the checkout body shared by every step."""
    payload = {"listing_id": args.listing_id, "guests": args.guests}
    if args.schedule_date:
        payload.update({
            "schedule_date": args.schedule_date,
            "schedule_time": args.schedule_time,
            "participants": args.participants,
        })
    else:
        payload.update({"check_in": args.check_in, "check_out": args.check_out})
    if args.coupon:
        payload["coupon_code"] = args.coupon
    return payload


def wallet_flow(args, guest_token: str, admin_token: str):
    print_step(1, "Top up guest wallet")
    topup = api_request(admin_token, "POST", "/api/v1/wallets/top-up", {
        "account_id": args.guest_id,
        "amount": args.top_up,
        "note": "Flow script top-up",
    })
    if not print_result(topup, ["type", "delta", "balance_after"]):
        sys.exit(1)

    print_step(2, "Quote price")
    quote = api_request(guest_token, "POST", "/api/v1/bookings/quote", checkout_payload(args))
    if not print_result(quote):
        sys.exit(1)
    if not quote["data"].get("available"):
        print("ERROR: Listing not available for these dates")
        sys.exit(1)

    print_step(3, "Pay with wallet")
    settled = api_request(guest_token, "POST", "/api/v1/bookings/wallet", checkout_payload(args))
    if not print_result(settled, ["booking_number", "status", "payment_status", "total", "guest_balance_after", "host_balance_after"]):
        sys.exit(1)

    print_step(4, "Guest wallet and points")
    print_result(api_request(guest_token, "GET", "/api/v1/wallets/me"))
    print_result(api_request(guest_token, "GET", "/api/v1/wallets/me/points"))


def gateway_flow(args, guest_token: str, admin_token: str):
    host_token = token_for(args.host_id, "host")

    print_step(1, "Quote price")
    quote = api_request(guest_token, "POST", "/api/v1/bookings/quote", checkout_payload(args))
    if not print_result(quote):
        sys.exit(1)

    print_step(2, "Open gateway order")
    order = api_request(guest_token, "POST", "/api/v1/bookings/gateway/orders", {
        **checkout_payload(args), "gateway": args.gateway,
    })
    if not print_result(order, ["gateway", "order_ref", "approval_url"]):
        sys.exit(1)
    order_ref = order["data"]["order_ref"]

    print_step(3, "Capture order")
    captured = api_request(guest_token, "POST", "/api/v1/bookings/gateway/capture", {
        **checkout_payload(args), "gateway": args.gateway, "order_ref": order_ref,
    })
    if not print_result(captured, ["booking_id", "booking_number", "status", "payment_status"]):
        sys.exit(1)
    booking_id = captured["data"]["booking_id"]
    if captured["data"]["payment_status"] == "paid":
        print("\nBooking settled by capture")
        return

    print_step(4, "Confirm booking (as host)")
    confirmed = api_request(host_token, "POST", f"/api/v1/bookings/{booking_id}/confirm")
    if not print_result(confirmed, ["id", "status", "payment_status", "confirmed_at"]):
        sys.exit(1)

    print_step(5, "Mark booking paid (as admin)")
    paid = api_request(admin_token, "POST", f"/api/v1/bookings/{booking_id}/mark-paid", {
        "payment_reference": order_ref,
    })
    if not print_result(paid, ["id", "status", "payment_status", "host_payout_status"]):
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Complete checkout and settlement flow")
    parser.add_argument("--listing-id", required=True, help="Listing UUID")
    parser.add_argument("--guest-id", required=True, help="Guest user id")
    parser.add_argument("--host-id", default="host-1", help="Host user id (gateway flow)")
    parser.add_argument("--admin-id", default="admin", help="Admin user id")
    parser.add_argument("--check-in", help="Check-in date (YYYY-MM-DD)")
    parser.add_argument("--check-out", help="Check-out date (YYYY-MM-DD)")
    parser.add_argument("--schedule-date", help="Slot date (YYYY-MM-DD)")
    parser.add_argument("--schedule-time", help="Slot time (HH:MM)")
    parser.add_argument("--participants", type=int, default=1, help="Number of participants")
    parser.add_argument("--guests", type=int, default=1, help="Number of guests")
    parser.add_argument("--coupon", help="Coupon code")
    parser.add_argument("--top-up", type=int, default=10_000_00, help="Wallet top-up in centavos")
    parser.add_argument("--gateway", choices=["paypal", "manual"], help="Pay through a gateway instead of the wallet")
    args = parser.parse_args()

    if not args.schedule_date and not (args.check_in and args.check_out):
        parser.error("either --check-in/--check-out or --schedule-date/--schedule-time is required")

    guest_token = token_for(args.guest_id, "guest")
    admin_token = token_for(args.admin_id, "admin")

    if args.gateway:
        gateway_flow(args, guest_token, admin_token)
    else:
        wallet_flow(args, guest_token, admin_token)

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
