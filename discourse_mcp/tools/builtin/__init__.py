"""Builtin tool package.

Static export of tool classes in registration order. Each class declares its
``access`` level (read, admin or write); the registry filters on it.
"""

from __future__ import annotations

from discourse_mcp.tools.builtin.create_category import CreateCategoryTool
from discourse_mcp.tools.builtin.create_post import CreatePostTool
from discourse_mcp.tools.builtin.create_topic import CreateTopicTool
from discourse_mcp.tools.builtin.create_user import CreateUserTool
from discourse_mcp.tools.builtin.drafts import (
    DeleteDraftTool,
    GetDraftTool,
    SaveDraftTool,
)
from discourse_mcp.tools.builtin.filter_topics import FilterTopicsTool
from discourse_mcp.tools.builtin.get_chat_messages import GetChatMessagesTool
from discourse_mcp.tools.builtin.get_user import GetUserTool
from discourse_mcp.tools.builtin.list_user_posts import ListUserPostsTool
from discourse_mcp.tools.builtin.list_users import ListUsersTool
from discourse_mcp.tools.builtin.read_post import ReadPostTool
from discourse_mcp.tools.builtin.read_topic import ReadTopicTool
from discourse_mcp.tools.builtin.search import SearchTool
from discourse_mcp.tools.builtin.select_site import SelectSiteTool
from discourse_mcp.tools.builtin.update_topic import UpdateTopicTool
from discourse_mcp.tools.builtin.update_user import UpdateUserTool
from discourse_mcp.tools.builtin.upload_file import UploadFileTool

TOOL_CLASSES = [
    SelectSiteTool,
    SearchTool,
    FilterTopicsTool,
    ReadTopicTool,
    ReadPostTool,
    GetUserTool,
    ListUserPostsTool,
    ListUsersTool,
    GetChatMessagesTool,
    GetDraftTool,
    CreatePostTool,
    CreateUserTool,
    CreateCategoryTool,
    CreateTopicTool,
    UpdateTopicTool,
    UpdateUserTool,
    UploadFileTool,
    SaveDraftTool,
    DeleteDraftTool,
]

__all__ = [
    "TOOL_CLASSES",
    "CreateCategoryTool",
    "CreatePostTool",
    "CreateTopicTool",
    "CreateUserTool",
    "DeleteDraftTool",
    "FilterTopicsTool",
    "GetChatMessagesTool",
    "GetDraftTool",
    "GetUserTool",
    "ListUserPostsTool",
    "ListUsersTool",
    "ReadPostTool",
    "ReadTopicTool",
    "SaveDraftTool",
    "SearchTool",
    "SelectSiteTool",
    "UpdateTopicTool",
    "UpdateUserTool",
    "UploadFileTool",
]
