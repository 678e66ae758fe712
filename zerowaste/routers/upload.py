from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from PIL import UnidentifiedImageError

from zerowaste.config import get_settings
from zerowaste.models.user import User
from zerowaste.schemas import (
    ImageInfo,
    ImageInfoResponse,
    ImageListResponse,
    ImageUploadResponse,
    MessageResponse,
)
from zerowaste.utils.auth_helper import get_principal
from zerowaste.utils.s3_service import (
    compress_image,
    delete_image,
    generate_signed_url,
    get_image_info,
    list_images,
    upload_to_s3,
)


router = APIRouter()


def _image_info(data: dict) -> ImageInfo:
    return ImageInfo(url=generate_signed_url(data["key"]), **data)


@router.post("/image", response_model=ImageUploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    user: User = Depends(get_principal),
):
    max_mb = get_settings().MAX_UPLOAD_SIZE_MB

    if image.content_type and not image.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are allowed")

    # read image into memory and upload
    raw_bytes = await image.read()

    if len(raw_bytes) > max_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"Image exceeds {max_mb}MB limit")

    try:
        buffer, ext = compress_image(raw_bytes)
    except UnidentifiedImageError:
        raise HTTPException(status_code=400, detail="File is not a readable image")

    key = upload_to_s3(buffer, ext, image.filename, owner=user.public_id)

    return ImageUploadResponse(image_url=generate_signed_url(key), key=key)


@router.get("/images", response_model=ImageListResponse)
def get_my_images(user: User = Depends(get_principal)):
    return ImageListResponse(images=[_image_info(data) for data in list_images(user.public_id)])


@router.get("/image/{file_name}", response_model=ImageInfoResponse)
def get_image(file_name: str, user: User = Depends(get_principal)):
    return ImageInfoResponse(image=_image_info(get_image_info(user.public_id, file_name)))


@router.delete("/image/{file_name}", response_model=MessageResponse)
def remove_image(file_name: str, user: User = Depends(get_principal)):
    delete_image(user.public_id, file_name)
    return MessageResponse(message="Image deleted successfully")
