"""
Configuration constants and shared utilities for Sleeper MCP Server.

This module resolves values from the ConfigManager once at import time and
exposes the HTTP client factory and the safe input patterns shared by the
upstream client and the operation catalog.
"""

import re
import httpx
from typing import Dict

from .config_manager import get_config_manager


# HTTP Client Configuration - loaded from ConfigManager
def _get_timeout_config():
    """Get timeout configuration from ConfigManager."""
    try:
        return get_config_manager().get_http_timeout()
    except Exception:
        return httpx.Timeout(30.0, connect=10.0)

def _get_long_timeout_config():
    """Get long timeout configuration from ConfigManager."""
    try:
        return get_config_manager().get_long_http_timeout()
    except Exception:
        return httpx.Timeout(60.0, connect=15.0)

DEFAULT_TIMEOUT = _get_timeout_config()
LONG_TIMEOUT = _get_long_timeout_config()


def _get_server_version():
    """Get server version from ConfigManager."""
    try:
        return get_config_manager().config.server.version
    except Exception:
        return "0.2.0"

def _get_base_user_agent():
    """Get base user agent from ConfigManager."""
    try:
        return get_config_manager().config.server.base_user_agent
    except Exception:
        return f"Sleeper-MCP-Server/{_get_server_version()}"

SERVER_VERSION = _get_server_version()
BASE_USER_AGENT = _get_base_user_agent()


def _get_user_agents():
    """Get user agents dictionary from ConfigManager."""
    try:
        config_manager = get_config_manager()
        return {
            "sleeper_api": config_manager.get_user_agent("sleeper_api"),
            "sleeper_players": config_manager.get_user_agent("sleeper_players"),
        }
    except Exception:
        base_agent = f"Sleeper-MCP-Server/{_get_server_version()}"
        return {
            "sleeper_api": f"{base_agent} (Sleeper API Fetcher)",
            "sleeper_players": f"{base_agent} (Sleeper Player Directory Fetcher)",
        }

USER_AGENTS = _get_user_agents()


def get_http_headers(service_name: str) -> Dict[str, str]:
    """
    Get standardized HTTP headers for a service.

    Args:
        service_name: The service name key from USER_AGENTS

    Returns:
        Dictionary with standard headers including User-Agent
    """
    return {
        "User-Agent": USER_AGENTS.get(service_name, BASE_USER_AGENT),
        "Accept": "application/json",
    }


def create_http_client(timeout: httpx.Timeout = None) -> httpx.AsyncClient:
    """
    Create a configured HTTP client with standard settings.

    Args:
        timeout: Optional custom timeout, uses DEFAULT_TIMEOUT if not provided

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        timeout=timeout or DEFAULT_TIMEOUT,
        follow_redirects=True
    )


def _get_limits():
    """Get validation limits from ConfigManager."""
    try:
        return get_config_manager().get_limits_dict()
    except Exception:
        return {
            "week_min": 1,
            "week_max": 22,
            "round_min": 1,
            "round_max": 18,
            "trending_lookback_min": 1,
            "trending_lookback_max": 168,
            "trending_limit_min": 1,
            "trending_limit_max": 100,
            "player_search_min": 1,
            "player_search_max": 100,
            "player_search_default": 10,
            "player_list_min": 1,
            "player_list_max": 500,
            "player_list_default": 50,
        }

LIMITS = _get_limits()


def _get_max_string_length():
    try:
        return get_config_manager().config.security.max_string_length
    except Exception:
        return 1000

MAX_STRING_LENGTH = _get_max_string_length()


# Safe character patterns for path segments built from tool input
SAFE_PATTERNS = {
    'sleeper_id': re.compile(r'^[0-9]{1,20}$'),  # league, draft and user ids are numeric
    'user_identifier': re.compile(r'^[A-Za-z0-9_]{1,40}$'),  # username or user id
    'player_id': re.compile(r'^[A-Za-z0-9]{1,10}$'),  # numeric ids, team codes for DEF
    'sport': re.compile(r'^[a-z]{2,10}$'),
    'team_code': re.compile(r'^[A-Za-z]{2,4}$'),
    'position': re.compile(r'^[A-Za-z]{1,4}$'),
    'season': re.compile(r'^(19|20)[0-9]{2}$'),
    'search_query': re.compile(r"^[A-Za-z0-9\s\.\-']{1,60}$"),
}
