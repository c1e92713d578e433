"""Main entry point for the Twitter adaptor."""

import argparse
import asyncio
import logging
import sys

from .config import Config, load_config
from .models import MentionEvent, PollError, RateLimitSignal
from .service import TwitterService
from .services import EventType, retry_with_backoff
from .webhook_server import create_webhook_app


def setup_logging(level: str = "info", verbose: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("tweepy").setLevel(logging.WARNING)


def log_events(service: TwitterService, logger: logging.Logger) -> None:
    """Subscribe loggers to the service events."""

    def on_mention(event: MentionEvent) -> None:
        logger.info("New mention %s in thread %s: %s", event.tweet_id, event.thread_id, event.message)

    def on_rate_limit(event: RateLimitSignal) -> None:
        logger.warning("Rate limit warning: %s", event.error)

    def on_poll_error(event: PollError) -> None:
        logger.error("Poll error: %s", event.error)

    service.on(EventType.NEW_MENTION, on_mention)
    service.on(EventType.RATE_LIMIT_WARNING, on_rate_limit)
    service.on(EventType.POLL_ERROR, on_poll_error)


async def run_webhook_server(args, logger, config: Config, service: TwitterService) -> None:
    """Run webhook server."""
    import uvicorn

    port = args.webhook_port or config.webhook.port
    logger.info("Starting webhook server on %s:%d...", config.webhook.host, port)

    app = create_webhook_app(service)
    uvicorn_config = uvicorn.Config(
        app,
        host=config.webhook.host,
        port=port,
        log_level="info" if args.verbose else "warning",
    )
    server = uvicorn.Server(uvicorn_config)
    await server.serve()


async def run_combined(args, logger, config: Config, service: TwitterService) -> None:
    """Run both polling and webhook server concurrently."""
    logger.info("Starting combined mode (polling + webhook)")

    polling_task = asyncio.create_task(service.run())
    webhook_task = asyncio.create_task(run_webhook_server(args, logger, config, service))

    # Wait for either task to complete (or fail)
    done, pending = await asyncio.wait(
        [polling_task, webhook_task],
        return_when=asyncio.FIRST_COMPLETED,
    )

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    for task in done:
        task.result()


async def check_auth(logger, service: TwitterService) -> int:
    """Verify credentials, waiting out rate limits."""
    profile = await retry_with_backoff(service.get_my_profile, service.rate_limit_policy)
    data = (profile or {}).get("data") or {}
    logger.info("Authenticated as @%s (%s)", data.get("username"), data.get("id"))
    return 0


async def async_main(args, logger) -> int:
    """Async main function."""
    try:
        logger.info("Loading configuration from %s", args.config)
        config = load_config(args.config)

        if not args.verbose:
            logging.getLogger().setLevel(config.twitter.log_level.upper())

        service = TwitterService(config.twitter)
        log_events(service, logger)

        if args.mode == "check-auth":
            return await check_auth(logger, service)

        if args.once:
            logger.info("Running single poll cycle...")
            await service.ingestor.resolve_identity()
            processed = await service.ingestor.poll()
            logger.info("Processed %d mention(s)", processed)
            return 0

        if args.mode == "webhook":
            # Identity is needed to filter out the account's own tweets
            await service.ingestor.resolve_identity()
            await run_webhook_server(args, logger, config, service)
        elif args.mode == "combined":
            await run_combined(args, logger, config, service)
        else:
            await service.run()

        return 0

    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Twitter mention poller with reply/post/search operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                              # Run with default config.yaml (polling mode)
  %(prog)s -c myconfig.yaml             # Run with custom config
  %(prog)s -v                           # Run with verbose logging
  %(prog)s --once                       # Poll once and exit (useful for testing)
  %(prog)s --mode webhook               # Run webhook server only
  %(prog)s --mode combined              # Run both polling + webhook
  %(prog)s --mode check-auth            # Verify credentials and exit
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (don't poll continuously)",
    )
    parser.add_argument(
        "--mode",
        choices=["polling", "webhook", "combined", "check-auth"],
        default="polling",
        help="Run mode: polling (default), webhook only, combined, or check-auth",
    )
    parser.add_argument(
        "--webhook-port",
        type=int,
        default=None,
        help="Port for webhook server (default: webhook.port from config, 8080)",
    )

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)
    logger = logging.getLogger(__name__)

    try:
        return asyncio.run(async_main(args, logger))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
