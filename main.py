"""CLI entry point for the Cancheito admin dashboard."""

import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

from firebase_admin import exceptions as firebase_exceptions

from cancheito.ai.account_reasoning import reason_account_action
from cancheito.ai.cache import AnalyticsCache, load_dashboard_insights
from cancheito.ai.flow import provider_from_config
from cancheito.ai.schemas import AccountAction, AccountReasoningInput
from cancheito.analytics.export import export_csv, export_xlsx
from cancheito.analytics.metrics import compute_dashboard_metrics, predictive_history
from cancheito.analytics.reports import DateRange, build_report
from cancheito.core.config import Settings
from cancheito.core.db import init_db
from cancheito.core.schemas import (
    AccountState,
    ActionResult,
    Collection,
    Notification,
    OfferStatus,
    UserType,
)
from cancheito.store.base import CollectionStore
from cancheito.store.firebase import FirebaseStore
from cancheito.store.memory import MemoryStore
from cancheito.sync.actions import AdminActions, ProfileUpdate
from cancheito.sync.aggregator import (
    LiveDashboard,
    build_unverified,
    join_collections,
    read_collections,
)
from cancheito.sync.dispatcher import OfferExpiryDispatcher
from cancheito.sync.matcher import filter_offers, filter_postulations, filter_users
from cancheito.sync.normalizer import normalize_user

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "config/settings.yaml"


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--snapshot",
        help="Run offline against a JSON export of the database instead of Firebase",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cancheito admin dashboard - live moderation, reports and AI insights",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- watch ---
    watch_parser = subparsers.add_parser(
        "watch",
        help="Keep a live view open: notifications and auto-closing of expired offers",
    )
    watch_parser.add_argument(
        "--duration",
        type=float,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    _add_common(watch_parser)

    # --- dashboard ---
    dashboard_parser = subparsers.add_parser("dashboard", help="Show metrics and AI insights")
    dashboard_parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip the AI summary and predictions",
    )
    dashboard_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore cached AI insights and fetch new ones",
    )
    _add_common(dashboard_parser)

    # --- list ---
    list_parser = subparsers.add_parser("list", help="List users, offers or postulations")
    list_parser.add_argument(
        "entity",
        choices=["users", "offers", "postulations", "unverified"],
    )
    list_parser.add_argument(
        "--filter",
        default="",
        help="Case-insensitive text filter (name/email, title/publisher, applicant/offer)",
    )
    _add_common(list_parser)

    # --- export ---
    export_parser = subparsers.add_parser("export", help="Export a date-range report")
    export_parser.add_argument("--from", dest="start", required=True, help="First day (YYYY-MM-DD)")
    export_parser.add_argument("--to", dest="end", required=True, help="Last day (YYYY-MM-DD)")
    export_parser.add_argument("--format", choices=["csv", "xlsx"], default="csv")
    export_parser.add_argument("--output", default=".", help="Output directory (default: .)")
    _add_common(export_parser)

    # --- offer-status ---
    offer_parser = subparsers.add_parser("offer-status", help="Open or close a job offer")
    offer_parser.add_argument("offer_id")
    offer_parser.add_argument("status", choices=["active", "closed"])
    _add_common(offer_parser)

    # --- verify-user ---
    verify_parser = subparsers.add_parser("verify-user", help="Mark a user as verified")
    verify_parser.add_argument("user_id")
    verify_parser.add_argument(
        "--revoke",
        action="store_true",
        help="Remove the verification instead",
    )
    _add_common(verify_parser)

    # --- edit-user ---
    edit_parser = subparsers.add_parser("edit-user", help="Edit a user's profile fields")
    edit_parser.add_argument("user_id")
    edit_parser.add_argument("--name", dest="full_name")
    edit_parser.add_argument("--email")
    edit_parser.add_argument("--experience")
    edit_parser.add_argument("--education")
    edit_parser.add_argument("--user-type", choices=["employer", "applicant"])
    edit_parser.add_argument("--location")
    _add_common(edit_parser)

    # --- account ---
    account_parser = subparsers.add_parser("account", help="Activate or suspend an account")
    account_parser.add_argument("action", choices=["activate", "suspend"])
    account_parser.add_argument("user_id")
    account_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Do not ask for confirmation",
    )
    _add_common(account_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Load settings; a missing default config file means built-in defaults."""
    if path == DEFAULT_CONFIG and not Path(path).exists():
        logger.info("No %s found - using default settings", path)
        return Settings()
    return Settings.from_yaml(path)


def open_store(settings: Settings, snapshot: str | None) -> CollectionStore:
    if snapshot:
        return MemoryStore.from_json(snapshot)
    return FirebaseStore.from_config(settings.store)


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in {"y", "yes"}


def _report_result(result: ActionResult, done: str) -> None:
    if result.success:
        print(done)
    else:
        print(f"Error: {result.error}", file=sys.stderr)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_watch(settings: Settings, store: CollectionStore, duration: float | None) -> None:
    actions = AdminActions(store, settings.store.paths)
    expiry = OfferExpiryDispatcher(actions.close_offer) if settings.sync.auto_close_expired else None

    def on_notification(notification: Notification) -> None:
        print(f"[{notification.timestamp:%H:%M}] {notification.title}: {notification.description}")

    def on_update(view: LiveDashboard) -> None:
        if view.is_loading:
            waiting = [c.value for c in Collection if not view.is_loaded(c)]
            logger.info("Waiting for %s", ", ".join(waiting))
            return
        current = view.snapshot()
        errors = ", ".join(f"{c.value}: {e}" for c, e in view.errors.items())
        print(
            f"{len(current.users)} users, {len(current.offers)} offers, "
            f"{len(current.postulations)} postulations"
            + (f" (errors - {errors})" if errors else "")
        )

    async with LiveDashboard(
        store,
        settings.store.paths,
        expiry=expiry,
        notifications=settings.sync.notifications,
        on_notification=on_notification,
        on_update=on_update,
    ):
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


async def cmd_dashboard(settings: Settings, store: CollectionStore, use_ai: bool, refresh: bool) -> None:
    users, offers, _ = await read_collections(store, settings.store.paths)
    metrics = compute_dashboard_metrics(users, offers)

    u, o = metrics.users, metrics.offers
    print(f"Users: {u.total} total, {u.verified} verified, {u.suspended} suspended, "
          f"{u.new_last_30_days} new (30d)")
    print(f"Offers: {o.total} total, {o.active} active, {o.closed} closed, "
          f"{o.new_last_30_days} new (30d)")
    print("Last 7 days (signups / offers):")
    for signups, created in zip(u.signups, o.created):
        print(f"  {signups.date:>6}: {signups.count:>3} / {created.count:>3}")
    print("Recent users:")
    for user in metrics.recent_users:
        print(f"  {user.registration_date}  {user.full_name} <{user.email}>")

    if not (use_ai and settings.ai.enabled):
        return

    conn = init_db(settings.cache.path)
    try:
        cache = AnalyticsCache(
            conn,
            key=settings.cache.key,
            ttl=timedelta(hours=settings.cache.ttl_hours),
        )
        result = await load_dashboard_insights(
            cache,
            provider_from_config(settings.ai),
            metrics.summary_input,
            predictive_history(users, offers),
            model=settings.ai.model,
            language=settings.ai.language,
            refresh=refresh,
        )
    finally:
        conn.close()

    if not result.success or result.data is None:
        print(f"\nAI insights unavailable: {result.error}", file=sys.stderr)
        return

    insights = result.data
    source = "cached" if insights.from_cache else "fresh"
    print(f"\nAI summary ({source}, {insights.fetched_at:%Y-%m-%d %H:%M}):")
    print(insights.summary.executive_summary)
    print("Key observations:")
    for item in insights.summary.key_observations:
        print(f"  - {item}")
    print("Recommendations:")
    for item in insights.summary.recommendations:
        print(f"  - {item}")
    print("Predictions (signups / offers):")
    offer_by_day = {p.date: p.prediction for p in insights.predictions.offer_prediction}
    for point in insights.predictions.user_prediction:
        print(f"  {point.date:>6}: {point.prediction:>3} / {offer_by_day.get(point.date, '-')}")


async def cmd_list(settings: Settings, store: CollectionStore, entity: str, query: str) -> None:
    users, offers, postulations = await read_collections(store, settings.store.paths)

    if entity in {"users", "unverified"}:
        listed = build_unverified(users) if entity == "unverified" else join_collections(users, {}, {}).users
        for user in filter_users(listed, query):
            flags = "verified" if user.is_verified else "unverified"
            print(f"{user.id}\t{user.full_name}\t{user.email}\t{user.user_type.value}\t"
                  f"{user.account_state.value}\t{flags}\t{user.registration_date}")
        return

    views = join_collections(users, offers, postulations)
    if entity == "offers":
        for offer in filter_offers(views.offers, query):
            print(f"{offer.id}\t{offer.title}\t{offer.employer.name}\t{offer.status.value}\t"
                  f"{offer.posted_date}\tdeadline {offer.deadline}")
    else:
        for p in filter_postulations(views.postulations, query):
            print(f"{p.id}\t{p.applicant.name}\t{p.offer.title}\t{p.offer.employer.name}\t"
                  f"{p.status.value}\t{p.postulation_date}")


async def cmd_export(settings: Settings, store: CollectionStore, args: argparse.Namespace) -> None:
    window = DateRange(start=date.fromisoformat(args.start), end=date.fromisoformat(args.end))
    views = join_collections(*await read_collections(store, settings.store.paths))
    report = build_report(views, window)
    print(f"{len(report.users)} users, {len(report.offers)} offers, "
          f"{len(report.postulations)} postulations in range")
    exporter = export_xlsx if args.format == "xlsx" else export_csv
    path = exporter(report, args.output)
    print(f"Report written to {path}")


async def cmd_offer_status(settings: Settings, store: CollectionStore, offer_id: str, status: str) -> None:
    actions = AdminActions(store, settings.store.paths)
    target = OfferStatus.ACTIVE if status == "active" else OfferStatus.CLOSED
    result = await actions.set_offer_status(offer_id, target)
    _report_result(result, f"Offer {offer_id} is now {target.value}.")


async def cmd_verify_user(settings: Settings, store: CollectionStore, user_id: str, revoke: bool) -> None:
    actions = AdminActions(store, settings.store.paths)
    result = await actions.set_user_verification(user_id, not revoke)
    _report_result(result, f"User {user_id} {'unverified' if revoke else 'verified'}.")


async def cmd_edit_user(settings: Settings, store: CollectionStore, args: argparse.Namespace) -> None:
    actions = AdminActions(store, settings.store.paths)
    update = ProfileUpdate(
        full_name=args.full_name,
        email=args.email,
        experience=args.experience,
        education=args.education,
        user_type=UserType(args.user_type) if args.user_type else None,
        location=args.location,
    )
    result = await actions.update_user_profile(args.user_id, update)
    _report_result(result, f"User {args.user_id} updated.")


async def cmd_account(settings: Settings, store: CollectionStore, args: argparse.Namespace) -> None:
    paths = settings.store.paths
    raw = await store.get(f"{paths.users}/{args.user_id}")
    if raw is None:
        msg = f"User not found: {args.user_id}"
        raise ValueError(msg)
    user = normalize_user(raw, args.user_id)
    action = AccountAction(args.action)

    proceed_prompt = f"{action.value.capitalize()} the account of {user.full_name}?"
    if settings.ai.enabled:
        request = AccountReasoningInput(
            action_type=action,
            user_email=user.email,
            user_name=user.full_name,
            user_type=user.user_type.value,
            account_state=user.account_state is AccountState.ACTIVE,
        )
        reasoning = await reason_account_action(
            request,
            provider_from_config(settings.ai),
            model=settings.ai.model,
            language=settings.ai.language,
        )
        if reasoning.success and reasoning.data is not None:
            print(reasoning.data.reasoning_summary)
        else:
            print(f"AI reasoning unavailable: {reasoning.error}", file=sys.stderr)
            proceed_prompt = "Continue without AI reasoning?"

    if not args.yes and not _confirm(proceed_prompt):
        print("Cancelled.")
        return

    state = AccountState.ACTIVE if action is AccountAction.ACTIVATE else AccountState.SUSPENDED
    result = await AdminActions(store, paths).set_account_state(args.user_id, state)
    _report_result(result, f"Account of {user.full_name} is now {state.value}.")


async def run(args: argparse.Namespace, settings: Settings) -> None:
    store = open_store(settings, args.snapshot)

    if args.command == "watch":
        await cmd_watch(settings, store, args.duration)
    elif args.command == "dashboard":
        await cmd_dashboard(settings, store, use_ai=not args.no_ai, refresh=args.refresh)
    elif args.command == "list":
        await cmd_list(settings, store, args.entity, args.filter)
    elif args.command == "export":
        await cmd_export(settings, store, args)
    elif args.command == "offer-status":
        await cmd_offer_status(settings, store, args.offer_id, args.status)
    elif args.command == "verify-user":
        await cmd_verify_user(settings, store, args.user_id, args.revoke)
    elif args.command == "edit-user":
        await cmd_edit_user(settings, store, args)
    elif args.command == "account":
        await cmd_account(settings, store, args)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        print("\nStopped.")
    except (FileNotFoundError, ImportError, ValueError, firebase_exceptions.FirebaseError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
