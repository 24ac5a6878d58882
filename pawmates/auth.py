"""
Actor extraction for request handlers

Login and token verification happen upstream; the authenticating proxy
forwards the verified identity in headers. Handlers only read it here.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Pet owner id forwarded by the authenticating proxy"""
    if not x_user_id:
        logger.warning("❌ No authenticated user found")
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


async def get_current_sitter_id(x_sitter_id: Optional[str] = Header(None)) -> str:
    """Sitter id forwarded by the authenticating proxy"""
    if not x_sitter_id:
        logger.warning("❌ No authenticated sitter found")
        raise HTTPException(status_code=401, detail="Sitter authentication required")
    return x_sitter_id


async def require_admin(x_user_role: Optional[str] = Header(None)) -> str:
    """Platform staff only (assignment, confirmation, platform cancellations)"""
    if (x_user_role or "").lower() != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return ADMIN_ROLE
