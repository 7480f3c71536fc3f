#!/usr/bin/env python3
"""
Command line client for a running LaunchMint server
"""

import os
import sys
import argparse

import requests
from dotenv import load_dotenv


def build_payload(args) -> dict:
    """Create request body from command line arguments"""
    payload = {
        'platform': args.platform,
        'name': args.name,
        'symbol': args.symbol,
        'image': args.image,
        'signingCredential': args.key or os.getenv('LAUNCH_PRIVATE_KEY'),
        'description': args.description,
        'initialBuyAmount': args.buy,
    }
    for field in ('twitter', 'telegram', 'website'):
        value = getattr(args, field)
        if value:
            payload[field] = value
    if args.api_key:
        payload['apiCredential'] = args.api_key
    if args.idempotency_key:
        payload['idempotencyKey'] = args.idempotency_key

    claimers = []
    for entry in args.fee_claimer or []:
        # username:bps or provider:username:bps
        parts = entry.split(':')
        if len(parts) == 2:
            claimers.append({'provider': 'twitter', 'username': parts[0], 'bps': int(parts[1])})
        elif len(parts) == 3:
            claimers.append({'provider': parts[0], 'username': parts[1], 'bps': int(parts[2])})
        else:
            raise ValueError(f"Bad fee claimer '{entry}', use [provider:]username:bps")
    if claimers:
        payload['feeClaimers'] = claimers
    return payload


def main() -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description='Launch a token through a LaunchMint server')
    parser.add_argument('platform', help='pumpfun, bags or usd1')
    parser.add_argument('name')
    parser.add_argument('symbol')
    parser.add_argument('image', help='Image URL')
    parser.add_argument('--description', default='')
    parser.add_argument('--twitter')
    parser.add_argument('--telegram')
    parser.add_argument('--website')
    parser.add_argument('--buy', type=float, default=0, help='Initial buy (SOL, or USD1 for usd1)')
    parser.add_argument('--key', help='Creator secret key (base58), defaults to LAUNCH_PRIVATE_KEY')
    parser.add_argument('--api-key', help='Bags API key')
    parser.add_argument('--fee-claimer', action='append', help='[provider:]username:bps, repeatable')
    parser.add_argument('--idempotency-key')
    parser.add_argument('--timeout', type=float, help='Deadline in seconds for the whole launch')
    parser.add_argument('--server', default=os.getenv('LAUNCHMINT_URL', 'http://localhost:3000'))
    args = parser.parse_args()

    try:
        payload = build_payload(args)
    except ValueError as e:
        print(f"❌ {e}")
        return 2

    headers = {}
    if args.timeout:
        headers['X-Request-Timeout'] = str(args.timeout)

    print(f"🚀 Launching {args.name} (${args.symbol}) on {args.platform}...")
    try:
        response = requests.post(
            f"{args.server.rstrip('/')}/api/tokens/create",
            json=payload,
            headers=headers,
            timeout=(args.timeout or 300) + 10,
        )
    except requests.RequestException as e:
        print(f"❌ Could not reach server: {e}")
        return 1

    try:
        result = response.json()
    except ValueError:
        print(f"❌ Unexpected response ({response.status_code}): {response.text[:200]}")
        return 1

    if not result.get('success'):
        print(f"❌ Launch failed: {result.get('error')}")
        return 1

    print(f"✅ Token launched!")
    print(f"   Address: {result['tokenAddress']}")
    print(f"   Tx: {result['txHash']}")
    print(f"   View: {result['url']}")
    if result.get('poolAddress'):
        print(f"   Pool: {result['poolAddress']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
