# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Conferencing providers."""

from typing import Dict, List, Type

from meetcapture.exceptions import ConfigurationError
from meetcapture.providers.base import MeetingProvider
from meetcapture.providers.google_meet import GoogleMeetProvider, GoogleMeetSelectors

_PROVIDERS: Dict[str, Type[MeetingProvider]] = {
    GoogleMeetProvider.name: GoogleMeetProvider,
    "meet": GoogleMeetProvider,
}


def get_provider(name: str = "google_meet", **kwargs) -> MeetingProvider:
    """Instantiate a registered provider by name."""
    try:
        provider_cls = _PROVIDERS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown meeting provider: {name!r} (available: {', '.join(list_providers())})"
        ) from None
    return provider_cls(**kwargs)


def list_providers() -> List[str]:
    return sorted(_PROVIDERS)


__all__ = [
    "GoogleMeetProvider",
    "GoogleMeetSelectors",
    "MeetingProvider",
    "get_provider",
    "list_providers",
]
