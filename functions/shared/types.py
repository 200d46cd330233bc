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

from dataclasses import dataclass
from datetime import datetime
from typing import Dict

TITLE_FIELD = "title"
SUMMARY_FIELD = "summary"
CONTENT_FIELD = "content"

REQUIRED_FIELD_MESSAGES = {
    TITLE_FIELD: "Title is required",
    SUMMARY_FIELD: "Summary is required",
    CONTENT_FIELD: "Content is required",
}


@dataclass(frozen=True)
class Post:
    """A blog post as held in the post list and returned by a backend."""

    id: str
    title: str
    summary: str
    content: str
    created_at: datetime


@dataclass(frozen=True)
class PostDraft:
    """Unsaved post fields as entered by the user."""

    title: str = ""
    summary: str = ""
    content: str = ""

    def trimmed(self) -> "PostDraft":
        return PostDraft(
            title=(self.title or "").strip(),
            summary=(self.summary or "").strip(),
            content=(self.content or "").strip(),
        )

    def missing_fields(self) -> Dict[str, str]:
        """
        Returns a mapping of field name to error message for each required
        field that is empty after trimming whitespace.
        """
        trimmed = self.trimmed()
        errors = {}
        for field_name, message in REQUIRED_FIELD_MESSAGES.items():
            if not getattr(trimmed, field_name):
                errors[field_name] = message
        return errors
