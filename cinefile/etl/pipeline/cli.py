"""Command Line Interface for catalog imports.

Provides the `cinefile` entry point: startup preload, on-demand list
import, interactive search and catalog display. The catalog is kept
between runs as a snapshot in the state directory.
"""

import argparse
import asyncio
import sys
import traceback

from cinefile.catalog import ALL_LISTS_ID, CatalogStore, Movie, SortOption
from cinefile.etl.extractors.csv.parser import NotFoundError
from cinefile.etl.extractors.tmdb import AuthError, TMDBClient
from cinefile.etl.pipeline.job import ImportState
from cinefile.etl.pipeline.manifest import CatalogManifest, ManifestError, load_manifest
from cinefile.etl.pipeline.orchestrator import ImportOrchestrator
from cinefile.etl.utils import setup_logger
from cinefile.settings import get_masked_settings, print_sources_status, settings
from cinefile.storage import JsonPreferencesStore, JsonStore

logger = setup_logger("cinefile.pipeline.cli")


# =============================================================================
# ARGUMENT PARSING
# =============================================================================


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        Configured parser with one subcommand per operation.
    """
    parser = argparse.ArgumentParser(
        prog="cinefile",
        description="CineFile - ranked movie list catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cinefile preload                         # Import every preload list
  cinefile import afi-100                  # Import one manifest list
  cinefile search "Heat" --year 1995       # Interactive search
  cinefile show --list afi-100 --sort year # Display a list
  cinefile lists                           # Known lists
        """,
    )
    parser.add_argument(
        "--manifest",
        default=None,
        help=f"Manifest file (default: {settings.importer.resolved_manifest_path})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("preload", help="Import every list marked for preload")

    import_parser = subparsers.add_parser("import", help="Import one manifest list")
    import_parser.add_argument("list_id", help="Manifest list id")

    search_parser = subparsers.add_parser("search", help="Search TMDB with full details")
    search_parser.add_argument("query", help="Movie title")
    search_parser.add_argument("--year", type=int, default=None)

    show_parser = subparsers.add_parser("show", help="Display the catalog")
    show_parser.add_argument("--list", dest="list_id", default=None, help=f"List id ('{ALL_LISTS_ID}' for every list)")
    show_parser.add_argument("--sort", choices=[option.value for option in SortOption], default=None)
    show_parser.add_argument("--reverse", action="store_true", help="Invert the baseline order")
    show_parser.add_argument("--watchlist", action="store_true", help="Only show the watchlist")
    show_parser.add_argument("--limit", type=int, default=25)

    subparsers.add_parser("lists", help="Show known lists and completion")
    subparsers.add_parser("config", help="Show configuration (secrets masked)")

    return parser


# =============================================================================
# HELPERS
# =============================================================================


def _open_store() -> CatalogStore:
    """Build the catalog store on the JSON state directory and load the snapshot."""
    store = CatalogStore(persistence=JsonPreferencesStore(JsonStore(settings.paths.state_dir)))
    count = store.load_snapshot()
    logger.debug(f"Catalog snapshot loaded: {count} movies")
    return store


def _load_manifest(args: argparse.Namespace) -> CatalogManifest:
    return load_manifest(args.manifest or settings.importer.resolved_manifest_path)


def _print_progress(progress: float) -> None:
    print(f"\r⏳ {progress:6.1%}", end="", file=sys.stderr, flush=True)
    if progress >= 1.0:
        print(file=sys.stderr)


def _format_movie(position: int, movie: Movie, list_id: str) -> str:
    rank = movie.list_rankings.get(list_id) if list_id != ALL_LISTS_ID else movie.best_rank
    watched = "✓" if movie.watched else " "
    director = f" - {movie.director}" if movie.director else ""
    rating = f" ★{movie.critic_rating:.1f}" if movie.critic_rating else ""
    return f"{position:>4}. [{watched}] #{rank or '-':<4} {movie.title} ({movie.year or '?'}){director}{rating}"


# =============================================================================
# COMMAND HANDLERS
# =============================================================================


async def _run_preload(args: argparse.Namespace) -> int:
    """Handle the preload command."""
    manifest = _load_manifest(args)
    store = _open_store()
    async with TMDBClient() as client:
        orchestrator = ImportOrchestrator(store, client)
        report = await orchestrator.preload(manifest, on_progress=_print_progress)
    store.save_snapshot()

    for job in report.jobs:
        print(f"  - {job.list_id}: {job.state.value} - {job.status_message}")
    print(report.status_message)
    return 1 if report.aborted else 0


async def _run_import(args: argparse.Namespace) -> int:
    """Handle the import command."""
    manifest = _load_manifest(args)
    store = _open_store()
    store.register_system_lists(manifest.movie_lists())
    async with TMDBClient() as client:
        orchestrator = ImportOrchestrator(store, client)
        job = await orchestrator.import_manifest_list(manifest, args.list_id, on_progress=_print_progress)
    store.save_snapshot()

    print(f"{job.list_id}: {job.status_message}")
    return 0 if job.state == ImportState.COMPLETED else 1


async def _run_search(args: argparse.Namespace) -> int:
    """Handle the search command."""
    store = _open_store()
    async with TMDBClient() as client:
        outcome = await ImportOrchestrator(store, client).search_interactive(args.query, year=args.year)

    if not outcome.ok:
        print(f"❌ {outcome.error_message}", file=sys.stderr)
        return 1

    print(f"🔎 {len(outcome.results)} results for '{outcome.query}'")
    for position, movie in enumerate(outcome.results, start=1):
        details = ", ".join(filter(None, [movie.director, ", ".join(movie.genres)]))
        print(f"{position:>3}. {movie.title} ({movie.year or '?'}) [{movie.id}] {details}")
    return 0


def _run_show(args: argparse.Namespace) -> int:
    """Handle the show command."""
    manifest = _load_manifest(args)
    store = _open_store()
    store.register_system_lists(manifest.movie_lists())

    if args.list_id:
        store.select_list(args.list_id)
    if args.sort:
        store.set_sort_option(SortOption(args.sort))
    if args.reverse:
        store.set_sort_ascending(False)

    preferences = store.preferences
    movies = store.watchlist() if args.watchlist else store.visible_movies()
    watched, total = store.completion()
    print(
        f"📋 {preferences.selected_list_id} - {preferences.sort_option.label} "
        f"({'baseline' if preferences.sort_ascending else 'reversed'}) - {watched}/{total} watched"
    )
    for position, movie in enumerate(movies[: args.limit], start=1):
        print(_format_movie(position, movie, preferences.selected_list_id))
    return 0


def _run_lists(args: argparse.Namespace) -> int:
    """Handle the lists command."""
    manifest = _load_manifest(args)
    store = _open_store()
    store.register_system_lists(manifest.movie_lists())

    for movie_list in store.lists:
        watched, total = store.completion(movie_list.id)
        kind = "user" if movie_list.is_editable else "system"
        print(f"  - {movie_list.id:<32} {kind:<6} {watched:>4}/{total:<4} {movie_list.name}")
    return 0


def _run_config(_args: argparse.Namespace) -> int:
    """Handle the config command."""
    for section, values in get_masked_settings().items():
        print(f"{section}: {values}")
    print_sources_status()
    return 0


# =============================================================================
# COMMAND DISPATCH
# =============================================================================


def _execute_cli_command(args: argparse.Namespace) -> int:
    """Execute CLI command based on arguments.

    Args:
        args: Parsed command line arguments.

    Returns:
        Process exit code.
    """
    if args.command == "preload":
        return asyncio.run(_run_preload(args))
    if args.command == "import":
        return asyncio.run(_run_import(args))
    if args.command == "search":
        return asyncio.run(_run_search(args))
    if args.command == "show":
        return _run_show(args)
    if args.command == "lists":
        return _run_lists(args)
    return _run_config(args)


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(_execute_cli_command(args))
    except KeyboardInterrupt:
        logger.warning("⚠️ Interrupted by user")
        sys.exit(130)
    except (AuthError, NotFoundError, ManifestError, KeyError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ FATAL ERROR: {e}", file=sys.stderr)
        traceback.print_exc()
        logger.error(f"❌ Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
