"""The tweetloom method catalog.

``METHOD_TABLE`` is plain data: one row per remote method, in the shape
accepted by ``MethodRegistry.from_table``. It covers a representative slice
of the v1.1 REST API. Adding a method is a matter of adding a row.
"""

from typing import Any

from methodfabric.registry import MethodRegistry

_PAGING = ["since_id", "max_id", "count", "page"]
_LIST_IDENTITY = ["list_id", "slug", "owner_screen_name", "owner_id"]

METHOD_TABLE: list[dict[str, Any]] = [
    # --- Statuses ---
    {
        "name": "update",
        "aliases": ["update_status"],
        "http_verb": "POST",
        "path_template": "statuses/update.json",
        "required_params": ["status"],
        "optional_params": [
            "in_reply_to_status_id",
            "lat",
            "long",
            "place_id",
            "display_coordinates",
            "trim_user",
        ],
        "requires_authentication": True,
        "description": "Updates the authenticating user's status.",
    },
    {
        "name": "show_status",
        "http_verb": "GET",
        "path_template": "statuses/show/{id}.json",
        "required_params": ["id"],
        "optional_params": ["trim_user", "include_entities"],
        "description": "Returns a single status, specified by the id parameter.",
    },
    {
        "name": "destroy_status",
        "http_verb": "POST",
        "path_template": "statuses/destroy/{id}.json",
        "required_params": ["id"],
        "optional_params": ["trim_user"],
        "requires_authentication": True,
        "description": "Destroys the status specified by the required id parameter.",
    },
    {
        "name": "retweet",
        "http_verb": "POST",
        "path_template": "statuses/retweet/{id}.json",
        "required_params": ["id"],
        "optional_params": ["trim_user"],
        "requires_authentication": True,
        "description": "Retweets a status.",
    },
    {
        "name": "home_timeline",
        "http_verb": "GET",
        "path_template": "statuses/home_timeline.json",
        "optional_params": [*_PAGING, "trim_user", "exclude_replies", "include_entities"],
        "requires_authentication": True,
        "description": "Returns the most recent statuses of the user and their friends.",
    },
    {
        "name": "user_timeline",
        "http_verb": "GET",
        "path_template": "statuses/user_timeline.json",
        "optional_params": [
            *_PAGING,
            "user_id",
            "screen_name",
            "trim_user",
            "exclude_replies",
            "include_rts",
        ],
        "description": "Returns the most recent statuses posted by a user.",
    },
    {
        "name": "mentions",
        "aliases": ["replies", "mentions_timeline"],
        "http_verb": "GET",
        "path_template": "statuses/mentions_timeline.json",
        "optional_params": [*_PAGING, "trim_user", "include_entities"],
        "requires_authentication": True,
        "description": "Returns the most recent mentions of the authenticating user.",
    },
    {
        "name": "public_timeline",
        "http_verb": "GET",
        "path_template": "statuses/public_timeline.json",
        "optional_params": ["trim_user", "include_entities"],
        "deprecated": True,
        "description": "Returns the most recent public statuses.",
    },
    # --- Users ---
    {
        "name": "show_user",
        "http_verb": "GET",
        "path_template": "users/show.json",
        "identity_params": ["id", "user_id", "screen_name"],
        "optional_params": ["include_entities"],
        "description": "Returns extended information of a given user.",
    },
    {
        "name": "lookup_users",
        "http_verb": "GET",
        "path_template": "users/lookup.json",
        "optional_params": ["user_id", "screen_name", "include_entities"],
        "requires_authentication": True,
        "description": "Returns up to 100 users; ids and screen names are comma-joined.",
    },
    {
        "name": "users_search",
        "aliases": ["find_people", "search_users"],
        "http_verb": "GET",
        "path_template": "users/search.json",
        "required_params": ["q"],
        "optional_params": ["page", "count", "include_entities"],
        "requires_authentication": True,
        "description": "Runs a search for users similar to Find People.",
    },
    # --- Social graph (cursor paged) ---
    {
        "name": "friends_ids",
        "aliases": ["following_ids"],
        "http_verb": "GET",
        "path_template": "friends/ids.json",
        "optional_params": ["user_id", "screen_name", "cursor", "stringify_ids", "count"],
        "requires_authentication": True,
        "description": "Returns a cursored collection of ids of users the user follows.",
    },
    {
        "name": "followers_ids",
        "http_verb": "GET",
        "path_template": "followers/ids.json",
        "optional_params": ["user_id", "screen_name", "cursor", "stringify_ids", "count"],
        "requires_authentication": True,
        "description": "Returns a cursored collection of ids of users following the user.",
    },
    {
        "name": "create_friend",
        "aliases": ["follow", "follow_new", "create_friendship"],
        "http_verb": "POST",
        "path_template": "friendships/create.json",
        "identity_params": ["user_id", "screen_name"],
        "optional_params": ["follow"],
        "requires_authentication": True,
        "description": "Follows the specified user.",
    },
    {
        "name": "destroy_friend",
        "aliases": ["unfollow", "destroy_friendship"],
        "http_verb": "POST",
        "path_template": "friendships/destroy.json",
        "identity_params": ["user_id", "screen_name"],
        "requires_authentication": True,
        "description": "Unfollows the specified user.",
    },
    # --- Favorites (page paged) ---
    {
        "name": "favorites",
        "http_verb": "GET",
        "path_template": "favorites/list.json",
        "optional_params": [*_PAGING, "user_id", "screen_name", "include_entities"],
        "requires_authentication": True,
        "description": "Returns the most recent statuses favorited by a user.",
    },
    {
        "name": "create_favorite",
        "http_verb": "POST",
        "path_template": "favorites/create.json",
        "required_params": ["id"],
        "optional_params": ["include_entities"],
        "requires_authentication": True,
        "description": "Favorites the status specified by id.",
    },
    {
        "name": "destroy_favorite",
        "http_verb": "POST",
        "path_template": "favorites/destroy.json",
        "required_params": ["id"],
        "optional_params": ["include_entities"],
        "requires_authentication": True,
        "description": "Un-favorites the status specified by id.",
    },
    # --- Direct messages ---
    {
        "name": "direct_messages",
        "http_verb": "GET",
        "path_template": "direct_messages.json",
        "optional_params": [*_PAGING, "include_entities", "skip_status"],
        "requires_authentication": True,
        "description": "Returns the most recent direct messages sent to the user.",
    },
    {
        "name": "new_direct_message",
        "http_verb": "POST",
        "path_template": "direct_messages/new.json",
        "required_params": ["text"],
        "identity_params": ["user_id", "screen_name"],
        "requires_authentication": True,
        "description": "Sends a new direct message to the specified user.",
    },
    # --- Lists (with pre-1.1 legacy paths) ---
    {
        "name": "list_statuses",
        "http_verb": "GET",
        "path_template": "lists/statuses.json",
        "optional_params": [*_LIST_IDENTITY, *_PAGING, "include_entities", "include_rts"],
        "legacy_path_template": "{owner_screen_name}/lists/{list_id}/statuses.json",
        "description": "Returns the timeline of statuses of members of a list.",
    },
    {
        "name": "list_members",
        "aliases": ["members_of_list"],
        "http_verb": "GET",
        "path_template": "lists/members.json",
        "optional_params": [*_LIST_IDENTITY, "cursor", "include_entities", "skip_status"],
        "legacy_path_template": "{owner_screen_name}/{list_id}/members.json",
        "description": "Returns a cursored collection of the members of a list.",
    },
    {
        "name": "get_lists",
        "aliases": ["list_lists", "all_subscriptions"],
        "http_verb": "GET",
        "path_template": "lists/list.json",
        "optional_params": ["user_id", "screen_name", "reverse"],
        "legacy_path_template": "{screen_name}/lists.json",
        "requires_authentication": True,
        "description": "Returns the lists a user subscribes to, including their own.",
    },
    {
        "name": "create_list",
        "http_verb": "POST",
        "path_template": "lists/create.json",
        "required_params": ["name"],
        "optional_params": ["mode", "description"],
        "requires_authentication": True,
        "description": "Creates a new list for the authenticated user.",
    },
    # --- Search and account ---
    {
        "name": "search",
        "http_verb": "GET",
        "path_template": "search/tweets.json",
        "required_params": ["q"],
        "optional_params": [
            "geocode",
            "lang",
            "locale",
            "result_type",
            "count",
            "until",
            "since_id",
            "max_id",
            "include_entities",
        ],
        "requires_authentication": True,
        "description": "Returns statuses matching a query.",
    },
    {
        "name": "rate_limit_status",
        "http_verb": "GET",
        "path_template": "application/rate_limit_status.json",
        "optional_params": ["resources"],
        "description": "Returns the remaining calls of the current rate limit window.",
    },
    {
        "name": "verify_credentials",
        "http_verb": "GET",
        "path_template": "account/verify_credentials.json",
        "optional_params": ["include_entities", "skip_status", "include_email"],
        "requires_authentication": True,
        "description": "Returns the authenticating user if the credentials are valid.",
    },
]


def build_registry() -> MethodRegistry:
    """Builds the immutable registry of every method in ``METHOD_TABLE``."""
    return MethodRegistry.from_table(METHOD_TABLE)
