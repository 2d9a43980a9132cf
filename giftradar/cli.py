import argparse

from loguru import logger

from giftradar.app import GiftRadarApp
from giftradar.errors import GiftRadarError
from giftradar.models.guild_config import ReminderKind, StartFrom
from giftradar.notifications.formatter import format_time_until


def add_code(app: GiftRadarApp, code: str, description: str, announce: bool):
    """Add a code by hand and announce it"""
    added = app.add_code(code, description, announce=announce)
    logger.info(f"Added {added.id} (valid until {added.valid_until.isoformat()})")


def list_codes(app: GiftRadarApp):
    now = app.clock()
    for code in sorted(app.store.all(), key=lambda c: c.valid_until):
        status = "expired" if code.is_expired(now) else "active"
        print(f"{code.id:<24} {status:<8} {code.valid_until:%Y-%m-%d}  {code.rewards}")


def verify_code(app: GiftRadarApp, code: str):
    result = app.verifier.verify(code)
    if result.valid:
        logger.info(f"{code} is valid until {result.code.valid_until.isoformat()}")
    else:
        logger.info(f"{code} is not valid: {result.reason.value}")


def sync_codes(app: GiftRadarApp, announce: bool):
    """Sync codes from the websites once"""
    result = app.sync_engine.sync_once()
    if not result.success:
        logger.error(f"Synchronization failed: {result.failure_reason}")
        return
    logger.info(f"Synchronization completed: {result.added} new codes added")
    if announce and result.new_codes:
        app.dispatcher.publish_codes(result.new_codes)


def reconcile(app: GiftRadarApp):
    report = app.reconciler.reconcile_all()
    logger.info(f"Result: {report}")


def setup_channel(app: GiftRadarApp, target: str, guild: str, channel: str):
    if target == "codes":
        app.registry.update(guild, code_channel_id=channel)
    else:
        app.reminders.set_reminder_channel(guild, channel)
    logger.info(f"Configured {target} channel {channel} for guild {guild}")


def configure_reminder(app: GiftRadarApp, args):
    now = app.clock()
    if args.kind == "beartrap":
        if args.disable:
            app.reminders.disable_bear_trap(args.guild)
            logger.info(f"Bear Trap reminder disabled for guild {args.guild}")
            return
        next_fire = app.reminders.configure_bear_trap(
            args.guild,
            args.hour,
            args.minute,
            StartFrom(args.start_from),
            args.interval,
        )
        kind = ReminderKind.bear_trap
    else:
        next_fire = app.reminders.configure_arena(args.guild, args.enabled)
        kind = ReminderKind.arena

    logger.info(
        f"{kind.value} reminder next fires at {next_fire.isoformat()} "
        f"(in {format_time_until(next_fire - now)}); "
        "a running `serve` process applies it within a minute"
    )


def main():
    parser = argparse.ArgumentParser(description="KingShot gift code radar CLI")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    add_parser = subparsers.add_parser("add", help="Add a promotional code")
    add_parser.add_argument("code")
    add_parser.add_argument("--description", "-d", default="")
    add_parser.add_argument("--no-announce", action="store_true")

    subparsers.add_parser("list", help="List known codes")

    verify_parser = subparsers.add_parser("verify", help="Check a code's validity")
    verify_parser.add_argument("code")

    sync_parser = subparsers.add_parser("sync", help="Sync codes from websites")
    sync_parser.add_argument("--no-announce", action="store_true")

    subparsers.add_parser("reconcile", help="Delete announcements of expired codes")

    setup_parser = subparsers.add_parser("setup", help="Configure guild channels")
    setup_parser.add_argument("target", choices=["codes", "reminder"])
    setup_parser.add_argument("guild")
    setup_parser.add_argument("channel")

    reminder_parser = subparsers.add_parser("reminder", help="Configure reminders")
    reminder_sub = reminder_parser.add_subparsers(dest="kind", required=True)
    bear_parser = reminder_sub.add_parser("beartrap", help="Bear Trap reminder (UTC)")
    bear_parser.add_argument("guild")
    bear_parser.add_argument("--hour", type=int)
    bear_parser.add_argument("--minute", type=int, default=0)
    bear_parser.add_argument("--start-from", choices=["today", "tomorrow"], default="today")
    bear_parser.add_argument("--interval", type=int, default=None)
    bear_parser.add_argument("--disable", action="store_true")
    arena_parser = reminder_sub.add_parser("arena", help="Daily Arena reminder")
    arena_parser.add_argument("guild")
    toggle = arena_parser.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--enabled", dest="enabled", action="store_true")
    toggle.add_argument("--disabled", dest="enabled", action="store_false")

    subparsers.add_parser("serve", help="Run the bot scheduler")

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return
    if args.command == "reminder" and args.kind == "beartrap":
        if args.hour is None and not args.disable:
            parser.error("--hour is required unless --disable is given")

    app = GiftRadarApp()
    try:
        if args.command == "add":
            add_code(app, args.code, args.description, not args.no_announce)
        elif args.command == "list":
            list_codes(app)
        elif args.command == "verify":
            verify_code(app, args.code)
        elif args.command == "sync":
            sync_codes(app, not args.no_announce)
        elif args.command == "reconcile":
            reconcile(app)
        elif args.command == "setup":
            setup_channel(app, args.target, args.guild, args.channel)
        elif args.command == "reminder":
            configure_reminder(app, args)
        elif args.command == "serve":
            app.run_forever()
    except (GiftRadarError, ValueError) as e:
        logger.error(f"{e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
