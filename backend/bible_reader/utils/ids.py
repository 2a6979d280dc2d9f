from __future__ import annotations

from uuid import uuid4


# 生成阅读会话 ID
def new_session_id() -> str:
    return f"r_{uuid4().hex}"


# 生成对照栏位 ID
def new_slot_id() -> str:
    return f"s_{uuid4().hex[:8]}"
