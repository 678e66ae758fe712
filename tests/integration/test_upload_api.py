import io
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError
from PIL import Image

from zerowaste.utils import s3_service
from zerowaste.utils.s3_service import build_key, compress_image


def _png_bytes(width=2000, height=1000):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeBucket:
    """In-memory stand-in for the boto3 S3 client calls the service makes."""

    def __init__(self):
        self.objects = {}

    def upload_fileobj(self, buffer, bucket, key, ExtraArgs=None):
        self.objects[key] = (buffer.read(), (ExtraArgs or {}).get("ContentType"))

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://cdn.example.com/{Params['Key']}?sig=test"

    def list_objects_v2(self, Bucket, Prefix):
        contents = [
            {"Key": key, "Size": len(body), "LastModified": datetime(2026, 1, 5, tzinfo=timezone.utc)}
            for key, (body, _) in self.objects.items()
            if key.startswith(Prefix)
        ]
        return {"Contents": contents} if contents else {}

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        body, content_type = self.objects[Key]
        return {"ContentLength": len(body), "ContentType": content_type}

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)


@pytest.fixture()
def bucket(monkeypatch):
    fake = FakeBucket()
    monkeypatch.setattr(s3_service, "get_s3_client", lambda: fake)
    return fake


def _upload(client, user, auth_headers, name="tray.png"):
    return client.post(
        "/upload/image",
        files={"image": (name, _png_bytes(), "image/png")},
        headers=auth_headers(user),
    )


def test_compress_image_resizes_wide_images():
    buffer, ext = compress_image(_png_bytes())

    assert ext in ("webp", "jpg")
    assert Image.open(buffer).size == (1400, 700)


def test_build_key_is_scoped_to_owner():
    key = build_key("abc123", "/tmp/samosa tray.png", "webp")

    assert key.startswith("donations/abc123/samosa tray-")
    assert key.endswith(".webp")


def test_upload_image(client, donor, auth_headers, bucket):
    res = _upload(client, donor, auth_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["key"] in bucket.objects
    assert body["key"].startswith(f"donations/{donor.public_id}/tray-")
    assert body["imageUrl"] == f"https://cdn.example.com/{body['key']}?sig=test"
    assert bucket.objects[body["key"]][1] in ("image/webp", "image/jpeg")


def test_upload_rejects_non_images(client, donor, auth_headers, bucket):
    res = client.post(
        "/upload/image",
        files={"image": ("menu.txt", b"just text", "text/plain")},
        headers=auth_headers(donor),
    )

    assert res.status_code == 400
    assert res.json()["error"] == "Only image files are allowed"
    assert bucket.objects == {}


def test_upload_rejects_unreadable_image(client, donor, auth_headers, bucket):
    res = client.post(
        "/upload/image",
        files={"image": ("broken.png", b"not really a png", "image/png")},
        headers=auth_headers(donor),
    )

    assert res.status_code == 400


def test_upload_requires_token(client, bucket):
    res = client.post("/upload/image", files={"image": ("tray.png", _png_bytes(), "image/png")})

    assert res.status_code == 401


def test_list_only_own_images(client, donor, make_user, auth_headers, bucket):
    other = make_user("Other Hotel", role="donor")
    key = _upload(client, donor, auth_headers).json()["key"]
    _upload(client, other, auth_headers)

    res = client.get("/upload/images", headers=auth_headers(donor))

    assert res.status_code == 200
    images = res.json()["images"]
    assert [image["key"] for image in images] == [key]
    assert images[0]["fileName"] == key.rsplit("/", 1)[1]
    assert images[0]["uploadedAt"] == "2026-01-05T00:00:00.000Z"


def test_image_info_and_delete(client, donor, auth_headers, bucket):
    key = _upload(client, donor, auth_headers).json()["key"]
    file_name = key.rsplit("/", 1)[1]

    info = client.get(f"/upload/image/{file_name}", headers=auth_headers(donor)).json()["image"]
    assert info["key"] == key
    assert info["size"] > 0

    res = client.delete(f"/upload/image/{file_name}", headers=auth_headers(donor))
    assert res.status_code == 200
    assert key not in bucket.objects

    res = client.get(f"/upload/image/{file_name}", headers=auth_headers(donor))
    assert res.status_code == 404


def test_cannot_delete_someone_elses_image(client, donor, make_user, auth_headers, bucket):
    other = make_user("Other Hotel", role="donor")
    key = _upload(client, donor, auth_headers).json()["key"]

    res = client.delete(f"/upload/image/{key.rsplit('/', 1)[1]}", headers=auth_headers(other))

    assert res.status_code == 404
    assert key in bucket.objects
