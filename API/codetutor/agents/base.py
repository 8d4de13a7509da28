from abc import ABC, abstractmethod
from typing import Any

from codetutor.schemas.analysis import AnalysisRequest


class BaseAgent(ABC):
    @abstractmethod
    async def run(self, request: AnalysisRequest) -> Any:
        raise NotImplementedError
