"""
Route definitions for a catalog.

``build_catalog_router()`` binds one ``CatalogService`` to its HTTP
surface. For the artists catalog that is:

- GET    /api/artists                          : list records
- POST   /api/artists                          : create (multipart)
- PUT    /api/artists/{id}                     : update (multipart)
- DELETE /api/artists/{id}                     : delete record and images
- DELETE /admin/files/artists/{id}/{imageName} : delete one image
- GET    /assets/artists/{id}/{imageName}      : serve an image

The actors catalog adds ``GET /api/actors/admin`` (full records, while the
public listing hides private fields) and serves photos from
``GET /photos/{key}``.

Multipart submissions carry the record as a JSON-encoded string field
(``artistData`` / ``actorData``), the files under ``images`` / ``photos``
and, on update, an optional JSON-encoded list of images to delete.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, File, Form, Header, HTTPException, Response, UploadFile
from fastapi.responses import StreamingResponse

from ..config import ASSET_MAX_AGE, DEFAULT_IMAGE_TYPE
from ..models import Acknowledgement, Upload
from .errors import CatalogError
from .service import CatalogService


def _raise_http(exc: CatalogError) -> NoReturn:
    raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


def _parse_record(raw: Optional[str], field: str) -> Dict[str, Any]:
    if not raw:
        raise HTTPException(status_code=400, detail=f"{field} is required")
    try:
        data = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be valid JSON")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail=f"{field} must be a JSON object")
    return data


def _parse_deletions(raw: Optional[str], field: str) -> List[str]:
    if not raw:
        return []
    try:
        names = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{field} must be valid JSON")
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise HTTPException(status_code=400, detail=f"{field} must be a list of image names")
    return names


def _read_uploads(files: Optional[List[UploadFile]]) -> List[Upload]:
    uploads = []
    for f in files or []:
        uploads.append(Upload(filename=f.filename or "", data=f.file.read(), content_type=f.content_type))
    return uploads


def build_catalog_router(service: CatalogService) -> APIRouter:
    kind = service.kind
    router = APIRouter(tags=[kind.name])

    @router.get(kind.api_prefix)
    def list_entries() -> List[Dict[str, Any]]:
        try:
            return service.list_entries()
        except CatalogError as exc:
            _raise_http(exc)

    if kind.admin_listing:
        @router.get(f"{kind.api_prefix}/admin")
        def list_entries_admin() -> List[Dict[str, Any]]:
            try:
                return service.list_entries(admin=True)
            except CatalogError as exc:
                _raise_http(exc)

    @router.post(kind.api_prefix, status_code=201)
    def create_entry(
        data: Optional[str] = Form(None, alias=kind.data_field),
        files: Optional[List[UploadFile]] = File(None, alias=kind.upload_field),
    ):
        record = _parse_record(data, kind.data_field)
        try:
            created = service.create(record, _read_uploads(files))
        except CatalogError as exc:
            _raise_http(exc)
        return {"success": True, kind.singular: created}

    @router.put(kind.api_prefix + "/{entity_id}")
    def update_entry(
        entity_id: str,
        data: Optional[str] = Form(None, alias=kind.data_field),
        files: Optional[List[UploadFile]] = File(None, alias=kind.upload_field),
        deletions: Optional[str] = Form(None, alias=kind.deletions_field),
    ):
        record = _parse_record(data, kind.data_field)
        names = _parse_deletions(deletions, kind.deletions_field)
        try:
            updated = service.update(entity_id, record, _read_uploads(files), names)
        except CatalogError as exc:
            _raise_http(exc)
        return {"success": True, kind.singular: updated}

    @router.delete(kind.api_prefix + "/{entity_id}", response_model=Acknowledgement)
    def delete_entry(entity_id: str) -> Acknowledgement:
        try:
            service.delete(entity_id)
        except CatalogError as exc:
            _raise_http(exc)
        return Acknowledgement()

    @router.delete(kind.files_prefix + "/{entity_id}/{image_name}", response_model=Acknowledgement)
    def delete_image(entity_id: str, image_name: str) -> Acknowledgement:
        try:
            service.delete_image(entity_id, image_name)
        except CatalogError as exc:
            _raise_http(exc)
        return Acknowledgement()

    @router.get(kind.asset_route + "/{path:path}")
    def get_asset(path: str, if_none_match: Optional[str] = Header(None)):
        try:
            obj = service.fetch_asset(kind.asset_key(path))
        except CatalogError as exc:
            _raise_http(exc)

        headers = {
            "Content-Type": obj.content_type or DEFAULT_IMAGE_TYPE,
            "Cache-Control": f"public, max-age={ASSET_MAX_AGE}",
            "ETag": obj.etag,
        }
        if if_none_match and if_none_match == obj.etag:
            return Response(status_code=304, headers=headers)
        return StreamingResponse(obj.iter_chunks(), headers=headers)

    return router
