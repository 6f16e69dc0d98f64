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

import json
import re
from enum import Enum
from typing import Any, Literal

# Keys with this prefix (e.g. "_lastUpdated") are written verbatim.
_PRIVATE_PREFIX = "_"


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(value: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()


def convert_keys(
    data: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """
    Recursively converts dict keys between snake_case and camelCase.

    Enum values are converted to their plain values so the result can be
    written to Firestore as-is.
    """
    convert = snake_to_camel if direction == "snake_to_camel" else camel_to_snake
    if isinstance(data, dict):
        converted = {}
        for key, value in data.items():
            if isinstance(key, str) and not key.startswith(_PRIVATE_PREFIX):
                key = convert(key)
            converted[key] = convert_keys(value, direction)
        return converted
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    if isinstance(data, Enum):
        return data.value
    return data


def serialized_size(payload: Any) -> int:
    """Byte length of the compact JSON encoding of `payload`."""
    encoded = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
    return len(encoded.encode("utf-8"))
