"""
.env file discovery for the Jarvis client.

Variables found in the first matching file are exported to the process
environment (without overriding values already set) before
JarvisSettings is built.
"""

from pathlib import Path
from typing import Optional, Dict, List
import logging

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)


EXAMPLE_ENV_CONTENT = '''# Jarvis client configuration
# Lines starting with # are comments and will be ignored.

# Optional: API endpoints
JARVIS_AUTH_API_URL=https://auth-api.dev.jarvis.cx
JARVIS_JARVIS_API_URL=https://api.dev.jarvis.cx
JARVIS_KNOWLEDGE_API_URL=https://knowledge-api.dev.jarvis.cx

# Optional: request behaviour
JARVIS_MAX_REFRESH_ATTEMPTS=1
JARVIS_TIMEOUT=30

# Optional: default assistant model
JARVIS_MODEL=gpt-4o-mini

# Optional: Debug settings
JARVIS_DEBUG=false
JARVIS_LOG_LEVEL=WARNING
'''


class EnvFileLoader:
    """
    .env file loader with hierarchical search.

    Search order (stops at first file found):
    1. Current directory: .jarvis/.env -> .env
    2. Parent directories (up to git root or home): .jarvis/.env -> .env
    3. Home directory: ~/.jarvis/.env -> ~/.env
    """

    CONFIG_DIR_NAME = ".jarvis"
    ENV_FILE_NAME = ".env"

    def __init__(self, working_directory: Optional[Path] = None):
        self.working_directory = Path(working_directory or Path.cwd()).resolve()
        self._loaded_file: Optional[Path] = None
        self._loaded_vars: Dict[str, str] = {}

    def load_env_file(self) -> Optional[Path]:
        """Load environment variables from the first .env file found.

        Returns:
            Path to loaded .env file or None if none found
        """
        env_file_path = self._find_env_file()
        if not env_file_path:
            logger.debug("No .env file found in search path")
            return None

        load_dotenv(env_file_path, override=False)
        self._loaded_file = env_file_path
        self._loaded_vars = {
            key: value for key, value in dotenv_values(env_file_path).items()
            if value is not None
        }
        logger.info(f"Loaded environment variables from: {env_file_path}")
        return env_file_path

    def get_loaded_file(self) -> Optional[Path]:
        return self._loaded_file

    def get_loaded_vars(self) -> Dict[str, str]:
        return self._loaded_vars.copy()

    def get_search_paths(self) -> List[Path]:
        """Get list of all paths that would be searched for .env files."""
        search_paths = []
        current_dir = self.working_directory

        while current_dir != current_dir.parent:
            search_paths.append(current_dir / self.CONFIG_DIR_NAME / self.ENV_FILE_NAME)
            search_paths.append(current_dir / self.ENV_FILE_NAME)
            if self._should_stop_search(current_dir):
                break
            current_dir = current_dir.parent

        home_dir = Path.home()
        search_paths.append(home_dir / self.CONFIG_DIR_NAME / self.ENV_FILE_NAME)
        search_paths.append(home_dir / self.ENV_FILE_NAME)
        return search_paths

    def create_example_env_file(self, target_dir: Optional[Path] = None) -> Path:
        """Write an example .env file and return its path.

        Args:
            target_dir: Directory to create file in (default: ./.jarvis)
        """
        target_dir = target_dir or self.working_directory / self.CONFIG_DIR_NAME
        target_dir.mkdir(parents=True, exist_ok=True)

        env_file_path = target_dir / self.ENV_FILE_NAME
        env_file_path.write_text(EXAMPLE_ENV_CONTENT, encoding="utf-8")
        logger.info(f"Created example .env file: {env_file_path}")
        return env_file_path

    def _find_env_file(self) -> Optional[Path]:
        for candidate in self.get_search_paths():
            if candidate.is_file():
                return candidate
        return None

    def _should_stop_search(self, directory: Path) -> bool:
        """Stop at the git repository root or the home directory."""
        if (directory / ".git").exists():
            return True
        return directory == Path.home()


def load_env_with_hierarchy(working_directory: Optional[Path] = None) -> Optional[Path]:
    """Convenience function to load .env file with hierarchical search."""
    loader = EnvFileLoader(working_directory)
    return loader.load_env_file()
