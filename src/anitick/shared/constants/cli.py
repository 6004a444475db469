"""
CLI Constants

Command names, option flags and help text for the Typer application.
"""


class CLICommands:
    """CLI command names."""

    SEARCH = "search"
    DETAILS = "details"
    ADD = "add"
    REMOVE = "remove"
    NOTIFY = "notify"
    LIST = "list"
    SETTINGS = "settings"
    REFRESH = "refresh"
    CHECK = "check"
    CLEAR_CACHE = "clear-cache"
    RUN = "run"


class CLIHelp:
    """CLI help text."""

    APP_NAME = "anitick"
    APP_DESCRIPTION = "Track airing anime from AniList and get notified about new episodes."
    APP_STYLE = "rich"
    VERSION_TEXT = "AniTick v{version}"

    SEARCH_HELP = "Search the AniList catalog."
    DETAILS_HELP = "Show full details for one anime."
    ADD_HELP = "Add an anime to the watchlist by AniList id."
    REMOVE_HELP = "Remove an anime from the watchlist."
    NOTIFY_HELP = "Turn episode notifications on or off for one tracked anime."
    LIST_HELP = "Show the watchlist."
    SETTINGS_HELP = "Show or change user settings."
    SETTINGS_SHOW_HELP = "Show the current user settings."
    SETTINGS_SET_HELP = "Set one setting, e.g. notifications.beforeAiring 1800."
    REFRESH_HELP = "Refresh airing data for every tracked anime now."
    CHECK_HELP = "Evaluate notifications once."
    CLEAR_CACHE_HELP = "Drop every cached detail response."
    RUN_HELP = "Run the periodic refresh and notification timers until interrupted."


class CLIMessages:
    """CLI output messages."""

    ADDED = "Added {title} ({id}) to the watchlist"
    REMOVED = "Removed {id} from the watchlist"
    REFRESHED = "Watchlist refreshed"
    CHECKED = "{count} notification(s) sent"
    CACHE_CLEARED = "Cache cleared"
    SETTINGS_UPDATED = "Settings updated"
    EMPTY_WATCHLIST = "Watchlist is empty"
    NOT_TRACKED = "{id} is not in the watchlist"
    NOTIFICATIONS_SWITCHED = "Notifications {state} for {title} ({id})"
    LAST_UPDATE = "Last refreshed: {when}"
    NO_RESULTS = "No results"
    RUNNING = "AniTick is running, press Ctrl+C to stop"
    INTERRUPTED = "Stopped"
