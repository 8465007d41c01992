"""
Categorization Route

``process-brain-dump``: categorize text without saving it. Always
answers with at least one item.
"""

from fastapi import APIRouter

from braindump.api.dependencies import CategorizerDep, CurrentUser
from braindump.domain.categories import ProcessBrainDumpRequest, ProcessBrainDumpResponse


router = APIRouter()


@router.post(
    "/process-brain-dump",
    response_model=ProcessBrainDumpResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def process_brain_dump(
    request: ProcessBrainDumpRequest,
    user: CurrentUser,
    categorizer: CategorizerDep,
):
    items = await categorizer.categorize(request.text)
    return ProcessBrainDumpResponse(items=items)
