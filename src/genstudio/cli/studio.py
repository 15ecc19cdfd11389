"""Command-line client for a running GenStudio API.

Usage:
    python -m genstudio.cli COMMAND [OPTIONS]

Examples:
    # Create an account (the token is saved for later commands)
    python -m genstudio.cli signup user@example.com secret1

    # Log in again later
    python -m genstudio.cli login user@example.com secret1

    # Start a generation and wait for its result (Ctrl-C cancels)
    python -m genstudio.cli generate photo.jpg "a lighthouse at dusk" --style artistic --wait

    # Show the 10 most recent generations
    python -m genstudio.cli history --limit 10
"""

import asyncio
import signal
import sys
from argparse import ArgumentParser, Namespace

import structlog

from genstudio.client.api_client import (
    ApiError,
    GenerationRecord,
    ImageUpload,
    StudioApiClient,
    poll_generation,
)
from genstudio.client.controller import ControllerState, GenerationController
from genstudio.core.config import ClientSettings, configure_logging
from genstudio.models.generation import GenerationStyle

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="GenStudio command-line client",
        epilog="API URL and token file come from GENSTUDIO_API_URL and GENSTUDIO_TOKEN_FILE",
    )
    parser.add_argument("--api-url", help="Base URL of the API (default: from settings)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    for name in ("signup", "login"):
        command = commands.add_parser(name, help=f"{name.capitalize()} and save the token")
        command.add_argument("email")
        command.add_argument("password")

    generate = commands.add_parser("generate", help="Start a generation")
    generate.add_argument("image", help="Path to a JPEG or PNG image")
    generate.add_argument("prompt", help="Prompt text (max 500 characters)")
    generate.add_argument(
        "--style",
        default=GenerationStyle.REALISTIC.value,
        choices=[style.value for style in GenerationStyle],
        help="Style option (default: realistic)",
    )
    generate.add_argument(
        "--wait",
        action="store_true",
        help="Poll until the generation completes or fails",
    )
    generate.add_argument(
        "--poll-interval",
        type=float,
        default=1.0,
        help="Seconds between status checks with --wait (default: 1.0)",
    )
    generate.add_argument(
        "--poll-timeout",
        type=float,
        default=60.0,
        help="Give up waiting after this many seconds (default: 60)",
    )

    history = commands.add_parser("history", help="List recent generations")
    history.add_argument("--limit", type=int, default=5, help="Number of entries (1-20)")

    return parser.parse_args(argv)


def print_generation(generation: GenerationRecord) -> None:
    created = generation.created_at.isoformat(timespec="seconds") if generation.created_at else "-"
    print(f"{generation.id}  {generation.status:<10}  {generation.style:<9}  {created}")
    print(f"    prompt: {generation.prompt}")
    if generation.image_url:
        print(f"    image:  {generation.image_url}")
    if generation.result_image_url:
        print(f"    result: {generation.result_image_url}")


async def run_auth(client: StudioApiClient, settings: ClientSettings, args: Namespace) -> int:
    if args.command == "signup":
        user = await client.signup(args.email, args.password)
    else:
        user = await client.login(args.email, args.password)

    settings.token_file.write_text(client.token or "", encoding="utf-8")
    logger.info("cli.token_saved", token_file=str(settings.token_file))
    print(f"Logged in as {user['email']} (id {user['id']})")
    return EXIT_OK


async def run_generate(client: StudioApiClient, args: Namespace) -> int:
    try:
        image = ImageUpload.from_path(args.image)
    except OSError as e:
        print(f"Error: cannot read image {args.image}: {e}", file=sys.stderr)
        return EXIT_ERROR

    def on_change(controller: GenerationController) -> None:
        if controller.status_text:
            print(controller.status_text)

    controller = GenerationController(client, on_change=on_change)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, controller.cancel)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl-C aborts the process
        logger.debug("cli.sigint_handler_unavailable")

    try:
        if not controller.submit(args.prompt, args.style, image):
            print(f"Error: {controller.error_message}", file=sys.stderr)
            return EXIT_ERROR
        await controller.wait()
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            logger.debug("cli.sigint_handler_unavailable")

    if controller.last_outcome == ControllerState.CANCELLED:
        print("Generation cancelled", file=sys.stderr)
        return EXIT_INTERRUPTED

    if controller.last_outcome != ControllerState.SUCCEEDED or controller.last_generation is None:
        print(f"Error: {controller.error_message}", file=sys.stderr)
        return EXIT_ERROR

    generation = controller.last_generation
    if args.wait:
        try:
            generation = await poll_generation(
                client, generation.id, interval=args.poll_interval, timeout=args.poll_timeout
            )
        except TimeoutError:
            print(f"Generation {generation.id} still processing", file=sys.stderr)
            return EXIT_ERROR

    print_generation(generation)
    return EXIT_ERROR if generation.status == "failed" else EXIT_OK


async def run_history(client: StudioApiClient, args: Namespace) -> int:
    generations = await client.list_generations(args.limit)
    if not generations:
        print("No generations yet")
    for generation in generations:
        print_generation(generation)
    return EXIT_OK


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 130 (cancelled)
    """
    args = parse_args(argv)

    settings = ClientSettings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    token = None
    if args.command not in ("signup", "login") and settings.token_file.exists():
        token = settings.token_file.read_text(encoding="utf-8").strip() or None

    logger.info("cli.started", command=args.command, api_url=args.api_url or settings.api_url)

    async with StudioApiClient(
        args.api_url or settings.api_url, token=token, timeout=settings.request_timeout
    ) as client:
        try:
            if args.command in ("signup", "login"):
                return await run_auth(client, settings, args)
            if args.command == "generate":
                return await run_generate(client, args)
            return await run_history(client, args)

        except ApiError as e:
            logger.info(
                "cli.api_error",
                status_code=e.status_code,
                error_kind=e.error_kind,
                error=e.message,
            )
            print(f"Error: {e.message}", file=sys.stderr)
            if e.status_code == 401:
                print("Log in again with: python -m genstudio.cli login", file=sys.stderr)
            return EXIT_ERROR


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
