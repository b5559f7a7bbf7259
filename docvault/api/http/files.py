import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Response, status

from docvault.core.dependencies import Services, get_services
from docvault.core.security import verify_file_token

router = APIRouter(prefix="/files", tags=["files"])

DISPOSITIONS = ("inline", "attachment")


@router.get("/{token}")
async def get_file(token: str, services: Services = Depends(get_services)):
    """Отдача файла по подписанной временной ссылке"""
    payload = verify_file_token(token, services.settings)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Link is invalid or expired"
        )
    
    blob_ref = payload["sub"]
    disposition = payload.get("disposition")
    if disposition not in DISPOSITIONS:
        disposition = "inline"
    
    data = await services.blob_storage.fetch(blob_ref)
    media_type = mimetypes.guess_type(blob_ref)[0] or "application/octet-stream"
    filename = blob_ref.rsplit("/", 1)[-1]
    
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'}
    )
