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

"""Persistence of recordings to the local filesystem and object storage."""

from meetcapture.storage.base import Destination, DestinationResult, UploadRecord
from meetcapture.storage.local import LocalDestination
from meetcapture.storage.s3 import S3Destination, create_s3_client
from meetcapture.storage.sink import PersistResult, StorageSink

__all__ = [
    "Destination",
    "DestinationResult",
    "LocalDestination",
    "PersistResult",
    "S3Destination",
    "StorageSink",
    "UploadRecord",
    "create_s3_client",
]
