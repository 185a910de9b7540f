from typing import Dict, Iterator, List, Iterable, Optional

from buildmatrix.common.dto.configuration import Configuration
from buildmatrix.common.config.logging_config import get_logger
from buildmatrix.common.exceptions.build_exceptions import DuplicateNameError, NotFoundError


logger = get_logger(__name__)


class ConfigurationRegistry:
    def __init__(self, configurations: Optional[Iterable[Configuration]] = None):
        self._configurations: Dict[str, Configuration] = {}
        for config in configurations or ():
            self.register(config)

    def register(self, config: Configuration) -> Configuration:
        if config.name in self._configurations:
            raise DuplicateNameError(config.name)

        self._configurations[config.name] = config
        logger.debug(f"Registered configuration {config.name}")
        return config

    def get(self, name: str) -> Configuration:
        try:
            return self._configurations[name]
        except KeyError:
            raise NotFoundError(name, available=self.names()) from None

    def list_all(self) -> List[Configuration]:
        return list(self._configurations.values())

    def list_default(self) -> List[Configuration]:
        return [config for config in self._configurations.values() if config.include_in_all]

    def names(self) -> List[str]:
        return list(self._configurations.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._configurations

    def __len__(self) -> int:
        return len(self._configurations)

    def __iter__(self) -> Iterator[Configuration]:
        return iter(self.list_all())
