"""Command-line interface for the Service Desk API."""

import argparse
import asyncio
import json
import logging
import os
import sys

import httpx

import config

logger = logging.getLogger(__name__)


def _base_url() -> str:
    return config.API_BASE_URL


def _headers(args: argparse.Namespace) -> dict[str, str]:
    employee_id = args.employee_id or os.getenv("SERVICEDESK_EMPLOYEE_ID", "")
    return {"X-Employee-ID": employee_id} if employee_id else {}


def _emit(resp: httpx.Response) -> None:
    sys.stdout.write(json.dumps(resp.json(), indent=2))
    sys.stdout.write("\n")
    sys.stdout.flush()


async def show_dashboard(args: argparse.Namespace) -> int:
    """Fetch /dashboard and print the snapshot as JSON."""
    params = {"scope": args.scope} if args.scope else None
    async with httpx.AsyncClient(base_url=_base_url(), headers=_headers(args)) as client:
        try:
            resp = await client.get("/dashboard", params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Dashboard request failed with %s: %s", exc.response.status_code, exc.response.text)
            return 1
        except httpx.HTTPError as exc:
            logger.exception("HTTP error fetching dashboard: %s", exc)
            return 1
        _emit(resp)
    return 0


async def assign_ticket(args: argparse.Namespace) -> int:
    """Assign a ticket to an employee, or to the caller with --me."""
    async with httpx.AsyncClient(base_url=_base_url(), headers=_headers(args)) as client:
        try:
            if args.me:
                body = {"expected_version": args.expected_version}
                resp = await client.post(f"/tickets/{args.ticket_id}/assign_to_me", json=body)
            else:
                body = {"assignee_id": args.assignee_id, "expected_version": args.expected_version}
                resp = await client.post(f"/tickets/{args.ticket_id}/assign", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Assign request failed with %s: %s", exc.response.status_code, exc.response.text)
            return 1
        except httpx.HTTPError as exc:
            logger.exception("HTTP error assigning ticket: %s", exc)
            return 1
        _emit(resp)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Service Desk API CLI")
    parser.add_argument(
        "--employee-id",
        help="Caller identity sent as X-Employee-ID (default: $SERVICEDESK_EMPLOYEE_ID)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("dashboard", help="Show the dashboard snapshot")
    p.add_argument("--scope", choices=["my", "all"], default=None)
    p.set_defaults(func=show_dashboard)

    p = sub.add_parser("assign", help="Assign a ticket")
    p.add_argument("ticket_id")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("--to", dest="assignee_id", help="Employee id of the new assignee")
    target.add_argument("--me", action="store_true", help="Assign the ticket to yourself")
    p.add_argument("--expected-version", type=int, default=None)
    p.set_defaults(func=assign_ticket)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s - %(message)s")
    parser = _build_parser()
    args = parser.parse_args(argv)
    return asyncio.run(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
