"""
Domain Interfaces - Abstract base classes for the service layer
Defines contracts for the external integrations the API talks to
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Mapping, Tuple

from domain.schemas import AnalysisResult, Clip


class IWebhookForwarder(ABC):
    """Abstract interface for delivering submissions to the user's webhook"""

    @abstractmethod
    async def post_json(self, webhook_url: str, payload: Dict[str, Any]) -> str:
        """Post a JSON submission and return the destination's response text"""
        pass

    @abstractmethod
    async def post_file(
        self,
        webhook_url: str,
        fields: Mapping[str, str],
        file_name: str,
        file_path: Path,
    ) -> str:
        """Post a multipart submission with a file on disk and return the response text"""
        pass


class IClipStore(ABC):
    """Abstract interface for the table holding generated clips"""

    @abstractmethod
    async def list_clips(self) -> List[Clip]:
        """List clips that have a playable video"""
        pass

    @abstractmethod
    async def get_attachment(self, clip_id: str) -> Dict[str, Any]:
        """Get the video attachment of a clip"""
        pass

    @abstractmethod
    async def stream_attachment(
        self, attachment: Dict[str, Any]
    ) -> Tuple[AsyncIterator[bytes], Dict[str, str]]:
        """Open a download stream for an attachment and return it with its headers"""
        pass

    @abstractmethod
    async def delete_clip(self, clip_id: str) -> None:
        """Delete a clip record"""
        pass


class ITranscriptAnalyzer(ABC):
    """Abstract interface for transcript virality analysis"""

    @abstractmethod
    async def analyze(self, transcript: str) -> AnalysisResult:
        """Score a transcript and suggest hooks"""
        pass


class IObjectStorage(ABC):
    """Abstract interface for direct-upload object storage"""

    @abstractmethod
    def create_upload_urls(self, filename: str) -> Dict[str, str]:
        """Create presigned upload and download URLs for a new object"""
        pass
