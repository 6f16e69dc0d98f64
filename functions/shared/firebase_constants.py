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

# Firestore collections
API_DATA_COLLECTION = "api_data"
SYNC_COLLECTION = "_sync"

# Singleton documents inside SYNC_COLLECTION
SYNC_METADATA_DOC = "metadata"
SYNC_LOCK_DOC = "lock"

CHUNK_SUFFIX = "_chunk_"

# Base record names inside API_DATA_COLLECTION
COLLECTIONS_LIST_DOC = "collections_list"
COLLECTION_DOC_PREFIX = "collection_"
CLANS_ALL_DOC = "clans_all"
CLANS_LIST_DOC = "clans_list"
CLANS_TOTAL_DOC = "clans_total"
RAP_DOC = "rap_data"
EXISTS_DOC = "exists_data"
ACTIVE_CLAN_BATTLE_DOC = "active_clan_battle"
CLAN_DETAIL_DOC_PREFIX = "clan_detail_"


def chunk_doc_name(base_name: str, index: int) -> str:
    return f"{base_name}{CHUNK_SUFFIX}{index}"


def collection_doc_name(collection_name: str) -> str:
    return f"{COLLECTION_DOC_PREFIX}{collection_name}"


def clan_detail_doc_name(clan_name: str) -> str:
    return f"{CLAN_DETAIL_DOC_PREFIX}{clan_name}"
