__version__ = "0.0.0"

from ._async_client import AsyncClient
from ._auth import TOKEN_LIFETIME
from ._auth import ApiKeyAuth
from ._auth import AuthBase
from ._auth import OAuthTokenAuth
from ._converter import AudioConverter
from ._exceptions import ApiError
from ._exceptions import AuthenticationError
from ._exceptions import CancelledError
from ._exceptions import ConfigurationError
from ._exceptions import ConversionError
from ._exceptions import InvalidArgumentError
from ._models import SUPPORTED_SAMPLE_RATES
from ._models import AudioFormat
from ._models import AudioPayload
from ._models import ConnectionConfig
from ._models import Credential
from ._models import Emotion
from ._models import Language
from ._models import Topic
from ._models import Voice
from ._models import WaveFormat
from ._utils.microphone import Microphone

__all__ = [
    "ApiError",
    "ApiKeyAuth",
    "AsyncClient",
    "AudioConverter",
    "AudioFormat",
    "AudioPayload",
    "AuthBase",
    "AuthenticationError",
    "CancelledError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConversionError",
    "Credential",
    "Emotion",
    "InvalidArgumentError",
    "Language",
    "Microphone",
    "OAuthTokenAuth",
    "SUPPORTED_SAMPLE_RATES",
    "TOKEN_LIFETIME",
    "Topic",
    "Voice",
    "WaveFormat",
]
