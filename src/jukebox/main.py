"""Console front end for the jukebox engine."""

import asyncio
import logging
import shlex
import sys

import colorlog

from jukebox.api import ApiError, JukeboxApi
from jukebox.config.settings import JukeboxSettings
from jukebox.config.validation import validate_and_setup_directories
from jukebox.generation import GenerationMode
from jukebox.persistent_state import PersistentState
from jukebox.player.models import Transition
from jukebox.player.vlc_runtime import VlcRuntime
from jukebox.scroll_gate import InfiniteScrollGate
from jukebox.session import JukeboxSession
from jukebox.track import Artist

logger = logging.getLogger(__name__)

HELP = """Commands:
  artist <id>             load an artist and play its first song
  playlist <id>           load a playlist and play its first song
  playlists [more]        list your playlists, "more" shows the next page
  artists [query]         browse artists, or search them by name
  list                    show the loaded songs (use "more" for the next page)
  play <n>                play song number n (1 coin)
  next | prev             skip forward or back (1 coin)
  pause                   toggle play/pause
  mute                    toggle mute
  seek <+|->              seek forward or back
  video | disc            switch the view mode
  coins                   show the coin balance
  quiz <difficulty> <n>   credit coins for n correct answers (Easy/Medium/Hard)
  insert                  insert a coin
  generate <name> <artist>...
                          generate a playlist from up to 5 artists, given
                          by id or name
  logout | quit"""


def setup_logging(log_level: int) -> None:
    formatter = colorlog.ColoredFormatter(
        "%(cyan)s%(asctime)s%(reset)s %(log_color)s%(levelname)-8s%(reset)s %(light_purple)s%(name)s:%(reset)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            "DEBUG": "purple",
            "INFO": "blue",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
    )

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)

    logger = logging.getLogger()
    logger.setLevel(log_level)
    logger.addHandler(handler)


def announce(transition: Transition) -> None:
    """Print user-facing feedback for interesting transitions."""
    if transition.action == "starved":
        print("No coins! Play the quiz to earn more.")
    elif transition.action == "insert_coin":
        print("Coins are earned in the quiz jukebox.")
    elif transition.debited and transition.after.current_track is not None:
        track = transition.after.current_track
        print(
            f"Now playing: {track.title} [{track.formatted_duration}] "
            f"({transition.ledger_after.balance} coins left)"
        )


async def find_artist(session: JukeboxSession, query: str) -> Artist | None:
    """Look an artist up by id, or take the best name match."""
    if query.isdigit():
        try:
            return await session.api.get_artist(int(query))
        except ApiError as e:
            print(f"Unknown artist {query}: {e}")
            return None

    matches = await session.search_artists(query)
    if not matches:
        print(f"No artist matches {query!r}")
        return None
    return matches[0]


async def reveal_more(gate: InfiniteScrollGate) -> None:
    pending = gate.on_sentinel_visibility(True)
    if pending is not None:
        await pending


def print_artists(artists: list[Artist]) -> None:
    if not artists:
        print("No artists found")
    for artist in artists:
        genre = f" ({artist.genre})" if artist.genre else ""
        print(f"{artist.artist_id:>6}  {artist.name}{genre}")


async def generate(session: JukeboxSession, name: str, queries: list[str]) -> None:
    wizard = session.generator
    wizard.open()
    if len(queries) > 1:
        wizard.choose_mode(GenerationMode.MULTIPLE)
    for query in queries:
        artist = await find_artist(session, query)
        if artist is None:
            wizard.close()
            return
        if not wizard.select_artist(artist):
            print(f"Skipping artist {artist.name}")

    job = wizard.start(name)
    while not job.finished:
        print(f"\rGenerating... {job.display_progress:5.1f}%", end="", flush=True)
        await asyncio.sleep(0.5)
    print(f"\rGenerating... {job.display_progress:5.1f}%")

    if wizard.error:
        print(wizard.error)
    else:
        print(f"Created playlist with {job.revealed_count} songs")
    wizard.close()


async def handle_command(session: JukeboxSession, line: str) -> bool:
    """Run one console command. Returns False when the console should exit."""
    try:
        args = shlex.split(line)
    except ValueError as e:
        print(e)
        return True
    if not args:
        return True

    command, rest = args[0].lower(), args[1:]
    state = session.machine.state

    if command in ("quit", "exit"):
        return False
    elif command == "logout":
        await session.logout()
        return False
    elif command == "help":
        print(HELP)
    elif command in ("artist", "playlist") and len(rest) == 1:
        select = session.select_artist if command == "artist" else session.select_playlist
        if not await select(int(rest[0])) and session.last_error:
            print(session.last_error)
    elif command == "playlists" and rest in ([], ["more"]):
        if rest:
            await reveal_more(session.playlist_gate)
        for playlist in session.playlist_gate.visible(session.playlists):
            print(f"{playlist.playlist_id:>6}  {playlist.name} ({playlist.songs_count} songs)")
    elif command == "artists":
        if rest:
            print_artists(await session.search_artists(" ".join(rest)))
        else:
            print_artists(await session.browse_artists())
    elif command in ("list", "more"):
        gate = session.song_gate
        if command == "more":
            await reveal_more(gate)
        for number, track in enumerate(gate.visible(state.queue), start=1):
            marker = ">" if number - 1 == state.current_index else " "
            print(f"{marker}{number:>4}. {track.title} [{track.formatted_duration}]")
    elif command == "play" and len(rest) == 1:
        index = int(rest[0]) - 1
        if 0 <= index < len(state.queue):
            session.play_index(index)
        else:
            print("No such song")
    elif command == "next":
        session.next()
    elif command == "prev":
        session.previous()
    elif command == "pause":
        session.toggle_play()
    elif command == "mute":
        session.toggle_mute()
    elif command == "seek" and len(rest) == 1:
        session.seek(forward=not rest[0].startswith("-"))
    elif command in ("video", "disc"):
        session.show_video(command == "video")
    elif command == "coins":
        ledger = session.machine.ledger
        print(f"{ledger.balance} coins, {ledger.total_plays} songs played")
    elif command == "quiz" and len(rest) == 2:
        won = session.award_quiz_coins(rest[0].capitalize(), int(rest[1]))
        print(f"+{won} coins")
    elif command == "insert":
        session.insert_coin()
    elif command == "generate" and len(rest) >= 2:
        await generate(session, rest[0], rest[1:])
    else:
        print(f"Unknown command: {line.strip()}. Type 'help' for a list.")
    return True


async def console(settings: JukeboxSettings) -> None:
    store = PersistentState(settings.state_file)
    session = JukeboxSession(
        settings,
        JukeboxApi(settings),
        VlcRuntime(settings.media_url_template),
        store,
    )
    session.machine.subscribe(announce)
    await session.start()
    print(HELP)

    try:
        while True:
            line = await asyncio.to_thread(input, "jukebox> ")
            try:
                if not await handle_command(session, line):
                    break
            except ValueError as e:
                print(f"Invalid argument: {e}")
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await session.close()


def run() -> None:
    """Entry point for the jukebox script."""
    settings = JukeboxSettings.from_environment()
    setup_logging(settings.log_level)
    settings.validate(logger)

    validation_errors = validate_and_setup_directories(settings)
    if validation_errors:
        for error in validation_errors:
            logger.error(error)
        logger.critical("Startup validation failed, exiting")
        sys.exit(1)

    logger.info("Starting jukebox")
    asyncio.run(console(settings))


if __name__ == "__main__":
    run()
