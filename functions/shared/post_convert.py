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

from datetime import datetime, timezone
from typing import Any

from dacite import Config, from_dict

from shared.json_utils import convert_keys
from shared.types import Post


def parse_timestamp(value: Any) -> datetime:
    """
    Normalizes a timestamp into a timezone-aware UTC datetime.

    Accepts datetimes (including Firestore's DatetimeWithNanoseconds), ISO-8601
    strings with or without a trailing "Z", and epoch milliseconds.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _numeric_id(value: Any) -> Any:
    # REST payloads may carry numeric ids; anything else is type-checked as is.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


_POST_CONFIG = Config(type_hooks={datetime: parse_timestamp, str: _numeric_id})
_REQUIRED_TEXT = ("id", "title", "summary", "content")


def post_from_dict(data: dict, post_id: str | None = None) -> Post:
    """
    Builds a Post from a camelCase document or JSON payload.

    Args:
        data (dict): Post fields keyed as stored (e.g. "createdAt").
        post_id (str | None): Overrides any "id" in data, used for Firestore
            documents where the id lives on the snapshot rather than the body.

    Raises:
        DaciteError: If a field is missing or has the wrong type.
        ValueError: If a text field is blank or the timestamp is unparseable.
    """
    fields = convert_keys(dict(data), "camel_to_snake")
    if post_id is not None:
        fields["id"] = post_id
    post = from_dict(data_class=Post, data=fields, config=_POST_CONFIG)
    blank = [name for name in _REQUIRED_TEXT if not getattr(post, name).strip()]
    if blank:
        raise ValueError(f"Blank post fields: {', '.join(blank)}")
    return post

