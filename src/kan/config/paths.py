"""Path resolution for Kan data files."""

from pathlib import Path

DEFAULT_KAN_DIR = ".kan"
BOARDS_DIR = "boards"
CARDS_DIR = "cards"
CONFIG_FILE = "config.toml"
CARD_SUFFIX = ".json"
GLOBAL_CONFIG_DIR = Path(".config") / "kan"


def default_global_config_path() -> Path:
    """``~/.config/kan/config.toml``."""
    return Path.home() / GLOBAL_CONFIG_DIR / CONFIG_FILE


class KanPaths:
    """
    Resolves file locations inside a project's Kan data directory.

    Layout::

        <project_root>/.kan/
            config.toml                 project config
            boards/<board>/config.toml  board config
            boards/<board>/cards/<id>.json
    """

    def __init__(
        self,
        project_root: Path,
        data_location: str = "",
        global_config_path: Path | None = None,
    ) -> None:
        """
        Initialize path resolver.

        Args:
            project_root: Repository or project directory
            data_location: Custom data directory relative to project_root
                (empty for the default ``.kan``)
            global_config_path: Override for the global config file
        """
        self.project_root = project_root
        self.data_location = data_location
        self._global_config_path = global_config_path

    @property
    def kan_root(self) -> Path:
        if self.data_location:
            return self.project_root / self.data_location
        return self.project_root / DEFAULT_KAN_DIR

    @property
    def boards_root(self) -> Path:
        return self.kan_root / BOARDS_DIR

    @property
    def project_config_path(self) -> Path:
        return self.kan_root / CONFIG_FILE

    @property
    def global_config_path(self) -> Path:
        if self._global_config_path is not None:
            return self._global_config_path
        return default_global_config_path()

    def board_dir(self, board_name: str) -> Path:
        return self.boards_root / board_name

    def board_config_path(self, board_name: str) -> Path:
        return self.board_dir(board_name) / CONFIG_FILE

    def cards_dir(self, board_name: str) -> Path:
        return self.board_dir(board_name) / CARDS_DIR

    def card_path(self, board_name: str, card_id: str) -> Path:
        return self.cards_dir(board_name) / f"{card_id}{CARD_SUFFIX}"

    def list_boards(self) -> list[str]:
        """Names of board directories that contain a config file, sorted.

        Raises:
            OSError: If the boards directory exists but cannot be read.
        """
        if not self.boards_root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.boards_root.iterdir()
            if entry.is_dir() and (entry / CONFIG_FILE).exists()
        )
