# Copyright 2025 Google LLC
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
# ==============================================================================

from dataclasses import dataclass, field
from enum import StrEnum
from typing import List, Optional


class SyncStatus(StrEnum):
    IN_PROGRESS = "in-progress"
    SUCCESS = "success"
    FAILED = "failed"
    COMPLETE = "complete"


class SyncType(StrEnum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class PayloadKind(StrEnum):
    SEQUENCE = "sequence"
    KEYED = "keyed"


@dataclass
class ChunkMetadata:
    """Describes how a payload was split across chunk records."""

    total_items: int
    chunk_count: int
    kind: PayloadKind
    last_updated: str


@dataclass
class SyncMetadata:
    """The singleton record describing the most recent sync run."""

    last_sync: str
    status: SyncStatus
    type: SyncType = SyncType.MANUAL
    run_id: Optional[str] = None
    successful: int = 0
    failed: int = 0
    collection_count: int = 0
    clan_count: int = 0
    duration: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    error: Optional[str] = None


@dataclass
class SyncResult:
    run_id: str
    status: SyncStatus
    successful: int = 0
    failed: int = 0
    collection_count: int = 0
    clan_count: int = 0
    duration_seconds: float = 0.0
    error: Optional[str] = None
    failed_resources: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (SyncStatus.SUCCESS, SyncStatus.COMPLETE)


@dataclass
class RunLease:
    owner: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

