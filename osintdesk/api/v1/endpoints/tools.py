from fastapi import APIRouter, Depends

from osintdesk.api.v1.helpers.authentication import get_current_user
from osintdesk.api.v1.helpers.responses import APIResponse, success_response
from osintdesk.core.tools import list_tools as registry_tools

router = APIRouter()


@router.get("", response_model=APIResponse, dependencies=[Depends(get_current_user)])
async def list_tools():
    """Available OSINT tools with their categories and input schemas."""
    tools = registry_tools()
    return success_response(data={"tools": tools, "count": len(tools)})
