"""
Click-based CLI for the F1 dashboard data core.

Usage:
    python -m f1_dashboard.cli setup
    python -m f1_dashboard.cli races --season 2024
    python -m f1_dashboard.cli standings --season 2023 --kind constructors
    python -m f1_dashboard.cli results --season 2023 --round 5
    python -m f1_dashboard.cli warm --start 2020 --end 2024
    python -m f1_dashboard.cli serve
"""
import asyncio

import click
import pandas as pd
from tqdm import tqdm

from f1_dashboard.config import cfg
from f1_dashboard.facade import InvalidInputError, create_facade
from f1_dashboard.utils.logger import logger, setup_logger


def _run(coro_factory):
    """Run one façade coroutine and always close the façade afterwards."""
    facade = create_facade()
    try:
        return asyncio.run(coro_factory(facade))
    except InvalidInputError as e:
        raise click.BadParameter(str(e))
    finally:
        facade.close()


def _echo_frame(rows: list[dict], columns: list[str]) -> None:
    if not rows:
        click.echo("(no data)")
        return
    click.echo(pd.DataFrame(rows, columns=columns).to_string(index=False))


@click.group()
def cli() -> None:
    """🏎️  F1 Dashboard Data Core"""
    setup_logger(log_dir=cfg.paths.logs, level=cfg.server.log_level)


@cli.command()
def setup() -> None:
    """Initialize project directories."""
    logger.info("Setting up project directories...")
    cfg.paths.setup()
    logger.success("✅ All directories created.")


@cli.command()
@click.option("--season", required=True, type=int, help="F1 season year.")
def races(season: int) -> None:
    """Show the race calendar of a season."""
    result = _run(lambda facade: facade.get_season_races(season))
    _echo_frame(
        [
            {
                "round": r.round,
                "name": r.name,
                "name_ja": r.name_ja,
                "circuit": r.circuit,
                "date_start": r.date_start,
                "date_end": r.date_end,
                "sessions": len(r.sessions),
                "results": bool(r.results),
            }
            for r in result
        ],
        ["round", "name", "name_ja", "circuit", "date_start", "date_end", "sessions", "results"],
    )


@cli.command()
@click.option("--season", required=True, type=int, help="F1 season year.")
@click.option(
    "--kind",
    type=click.Choice(["drivers", "constructors"]),
    default="drivers",
    show_default=True,
    help="Which championship to show.",
)
def standings(season: int, kind: str) -> None:
    """Show driver or constructor championship standings."""
    if kind == "drivers":
        entries = _run(lambda facade: facade.get_driver_standings(season))
    else:
        entries = _run(lambda facade: facade.get_constructor_standings(season))
    _echo_frame(
        [e.model_dump() for e in entries],
        ["position", "name", "code", "team", "points", "wins"],
    )


@cli.command()
@click.option("--season", required=True, type=int, help="F1 season year.")
@click.option("--round", "round_number", required=True, type=int, help="Round number.")
def results(season: int, round_number: int) -> None:
    """Show the classification of one race."""
    race = _run(lambda facade: facade.get_race_results(season, round_number))
    if race is None:
        click.echo(f"No results for {season} round {round_number}.")
        return
    click.echo(f"{race.name} ({race.date_start})")
    _echo_frame(
        [r.model_dump() for r in race.results or []],
        ["position_text", "driver", "driver_code", "team", "points", "time", "status"],
    )


@cli.command()
@click.option("--start", required=True, type=int, help="First season (inclusive).")
@click.option("--end", required=True, type=int, help="Last season (inclusive).")
def warm(start: int, end: int) -> None:
    """Pre-fetch calendars and standings for a range of seasons."""
    if start > end:
        raise click.BadParameter(f"start ({start}) must not be after end ({end})")

    async def _warm(facade) -> int:
        total = 0
        for season in tqdm(range(start, end + 1), desc="Seasons"):
            season_races = await facade.get_season_races(season)
            await facade.get_driver_standings(season)
            await facade.get_constructor_standings(season)
            total += len(season_races)
        logger.info(f"Cache stats after warm-up: {facade.get_cache_stats()}")
        return total

    total = _run(_warm)
    logger.success(f"✅ Warmed {end - start + 1} seasons ({total} races).")


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to config).")
@click.option("--port", default=None, type=int, help="Port (defaults to config).")
def serve(host: str | None, port: int | None) -> None:
    """Launch the FastAPI backend with uvicorn."""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=host or cfg.server.host,
        port=port or cfg.server.port,
        log_level=cfg.server.log_level.lower(),
        # Keep uvicorn on the loguru bridge installed by setup_logger
        log_config=None,
    )


if __name__ == "__main__":
    cli()
