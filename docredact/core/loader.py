# docredact/core/loader.py

"""Pattern and vocabulary loader for the detection pipeline."""

import yaml
import logging
from pathlib import Path
from typing import Dict, FrozenSet, List, Any, Optional

from docredact.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class PatternLoader:
    """Singleton loader for patterns, vocabulary, and recognizer tables.

    Loads configuration once from patterns.yaml and caches it for the
    process lifetime. The recognizer worker process builds its own instance.
    """

    _instance: Optional["PatternLoader"] = None
    _config: Dict[str, Any] = {}
    _loaded: bool = False
    _vocab_sets: Dict[str, FrozenSet[str]] = {}

    REQUIRED_SECTIONS = ("patterns", "vocabulary", "recognizer")

    def __new__(cls) -> "PatternLoader":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not PatternLoader._loaded:
            self._load_config()

    def _load_config(self) -> None:
        """Loads patterns.yaml from the module directory.

        Raises:
            ConfigurationError: If file is missing, invalid, or empty.
        """
        config_path = Path(__file__).parent / "patterns.yaml"

        try:
            if not config_path.exists():
                error_msg = f"Configuration file not found: {config_path}"
                logger.error(error_msg)
                raise ConfigurationError(error_msg)

            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)

            if not config or not isinstance(config, dict):
                raise ConfigurationError("Configuration file is empty or invalid")

            PatternLoader._config = config
            self._validate_config()

            # Lowercased sets for membership checks in the heuristics
            PatternLoader._vocab_sets = {
                category: frozenset(str(term).lower() for term in (terms or []))
                for category, terms in config.get("vocabulary", {}).items()
            }

            PatternLoader._loaded = True
            logger.info(
                "Configuration loaded successfully",
                extra={
                    "config_path": str(config_path),
                    "pattern_count": len(config.get("patterns", {})),
                    "vocab_count": len(config.get("vocabulary", {})),
                },
            )

        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error: {e}", exc_info=True)
            raise ConfigurationError(f"Failed to parse patterns.yaml: {e}") from e
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Configuration loading failed: {e}", exc_info=True)
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def _validate_config(self) -> None:
        """Validates required configuration sections exist.

        Raises:
            ConfigurationError: If required sections are missing.
        """
        missing = [s for s in self.REQUIRED_SECTIONS if s not in PatternLoader._config]

        if missing:
            error_msg = f"Missing required configuration sections: {missing}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg)

        for entity_type, defs in PatternLoader._config["patterns"].items():
            for definition in defs or []:
                if not {"name", "regex", "score"} <= set(definition):
                    raise ConfigurationError(
                        f"Pattern for '{entity_type}' needs name, regex and score"
                    )

    @classmethod
    def get_instance(cls) -> "PatternLoader":
        """Returns the singleton instance of PatternLoader."""
        if cls._instance is None or not cls._loaded:
            cls._instance = cls()
        return cls._instance

    def get_pattern_types(self) -> List[str]:
        """Returns entity types that have patterns, in file order."""
        return list(self._config.get("patterns", {}).keys())

    def get_patterns(self, entity_type: str) -> List[Dict[str, Any]]:
        """Returns regex patterns for a specific entity type.

        Args:
            entity_type: Entity type constant (e.g., EntityType.EMAIL)

        Returns:
            List of pattern dictionaries with 'name', 'regex', 'score' keys
        """
        patterns = self._config.get("patterns", {}).get(entity_type, [])
        return patterns if patterns else []

    def get_vocabulary(self, category: str) -> List[str]:
        """Retrieves vocabulary list by category name.

        Args:
            category: Vocabulary category (e.g., 'tech_keywords')

        Returns:
            List of vocabulary terms, empty list if category not found
        """
        vocab = self._config.get("vocabulary", {}).get(category, [])
        return vocab if vocab else []

    def get_vocabulary_set(self, category: str) -> FrozenSet[str]:
        """Returns the lowercased vocabulary of a category as a set."""
        return self._vocab_sets.get(category, frozenset())

    def get_label_map(self) -> Dict[str, str]:
        """Returns the recognizer label to entity type mapping."""
        label_map = self._config.get("recognizer", {}).get("label_map", {})
        return {str(k).upper(): v for k, v in (label_map or {}).items()}
