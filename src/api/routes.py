"""
API Routes

Exposes the lineage core over HTTP:
- UID minting and parsing
- Status transition validation and status info
- Relation registration and lookup
- Trace / chain queries and graph export
- Legacy id -> UID mappings

"No lineage found" is an empty list, not an error. An illegal transition
is a 409 carrying the legal next states.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from src.identity.codec import ParsedUID, parse
from src.identity.legacy import InMemoryUidMappingStore, UidMappingStore
from src.lineage.graph import build_lineage_graph, graph_to_json
from src.lineage.service import LineageService
from src.models.enums import BusinessStatus, EntityType
from src.models.mapping import UidMapping
from src.models.relation import Relation
from src.models.trace import BusinessChain, StatusInfo, TraceResult, TransitionResult
from src.protocol.state_machine import get_status_info, transition

logger = logging.getLogger(__name__)

router = APIRouter()

# Global service instances (initialized lazily)
_lineage_service: Optional[LineageService] = None
_uid_mappings: Optional[UidMappingStore] = None


def get_lineage_service() -> LineageService:
    """Get or create the lineage service singleton."""
    global _lineage_service
    if _lineage_service is None:
        _lineage_service = LineageService()
    return _lineage_service


def set_lineage_service(service: Optional[LineageService]) -> None:
    """Install the service the routes use (None resets to a fresh default)."""
    global _lineage_service
    _lineage_service = service


def get_uid_mappings() -> UidMappingStore:
    """Get or create the UID mapping store."""
    global _uid_mappings
    if _uid_mappings is None:
        _uid_mappings = InMemoryUidMappingStore()
    return _uid_mappings


def set_uid_mappings(store: Optional[UidMappingStore]) -> None:
    global _uid_mappings
    _uid_mappings = store


# ===== Request / Response Models =====

class CreateRelationRequest(BaseModel):
    """Body for POST /relations. Key fields are validated in the handler."""
    model_config = ConfigDict(populate_by_name=True)

    source_uid: Optional[str] = Field(default=None, alias="sourceUID")
    target_uid: Optional[str] = Field(default=None, alias="targetUID")
    relation_type: Optional[str] = Field(default=None, alias="relationType")
    metadata: Optional[dict[str, Any]] = None


class MintRequest(BaseModel):
    entity_type: EntityType = Field(..., alias="entityType")


class MintResponse(BaseModel):
    uid: str


class ParsedUIDResponse(BaseModel):
    uid: str
    entity_type: EntityType = Field(..., alias="entityType")
    timestamp: int
    random: str


class TransitionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_status: str = Field(..., alias="fromStatus")
    to_status: str = Field(..., alias="toStatus")
    reason: Optional[str] = None


class UidMappingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_id: Optional[str] = Field(default=None, alias="oldId")
    uid: Optional[str] = None
    entity_type: Optional[str] = Field(default=None, alias="entityType")


# ===== UIDs =====

@router.post("/uids", response_model=MintResponse, status_code=status.HTTP_201_CREATED)
async def mint_uid(request: MintRequest) -> MintResponse:
    """Mint a new UID for an entity type."""
    return MintResponse(uid=get_lineage_service().mint(request.entity_type))


@router.get("/uids/{uid}", response_model=ParsedUIDResponse)
async def parse_uid(uid: str) -> ParsedUIDResponse:
    """Decode a UID into its segments."""
    outcome = parse(uid)
    if not isinstance(outcome, ParsedUID):
        raise HTTPException(
            status_code=422,
            detail={"error": outcome.error.value, "message": outcome.detail},
        )
    return ParsedUIDResponse(
        uid=uid,
        entityType=outcome.entity_type,
        timestamp=outcome.timestamp,
        random=outcome.random,
    )


# ===== Status Machine =====

@router.post("/transitions", response_model=TransitionResult)
async def validate_transition(request: TransitionRequest, response: Response) -> TransitionResult:
    """Validate a proposed status change; 409 when it is not allowed."""
    result = transition(request.from_status, request.to_status, request.reason)
    if not result.success:
        response.status_code = status.HTTP_409_CONFLICT
    return result


@router.get("/statuses/{status_name}", response_model=StatusInfo)
async def status_info(status_name: BusinessStatus) -> StatusInfo:
    """Label and next states for a canonical status."""
    return get_status_info(status_name)


# ===== Relations =====

@router.post("/relations", response_model=Relation)
async def create_relation(request: CreateRelationRequest, response: Response) -> Relation:
    """
    Register a relation.

    Returns 201 when stored, 200 with the existing relation when the
    (source, target, type) triple is already present.
    """
    if not (request.source_uid and request.target_uid and request.relation_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sourceUID, targetUID and relationType are required",
        )

    relation = Relation(
        source_uid=request.source_uid,
        target_uid=request.target_uid,
        relation_type=request.relation_type,
        metadata=request.metadata,
    )
    stored, created = await get_lineage_service().relation_store.add(relation)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return stored


@router.get("/relations", response_model=list[Relation])
async def list_relations(
    uid: Optional[str] = Query(default=None),
    source_uid: Optional[str] = Query(default=None, alias="sourceUID"),
    target_uid: Optional[str] = Query(default=None, alias="targetUID"),
) -> list[Relation]:
    """Relations touching ``uid``, or filtered by source and/or target."""
    store = get_lineage_service().relation_store
    if uid:
        return await store.by_uid(uid)
    if source_uid:
        relations = await store.by_source(source_uid)
        if target_uid:
            relations = [r for r in relations if r.target_uid == target_uid]
        return relations
    if target_uid:
        return await store.by_target(target_uid)
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Provide uid, sourceUID or targetUID",
    )


# ===== Lineage =====

@router.get("/trace/{uid}", response_model=list[TraceResult])
async def trace_uid(
    uid: str,
    max_depth: Optional[int] = Query(default=None, alias="maxDepth", ge=1, le=50),
) -> list[TraceResult]:
    """Trace all records reachable from ``uid``."""
    return await get_lineage_service().trace(uid, max_depth=max_depth)


@router.get("/trace/{uid}/graph")
async def trace_graph(
    uid: str,
    max_depth: Optional[int] = Query(default=None, alias="maxDepth", ge=1, le=50),
) -> dict[str, Any]:
    """Trace as node-link JSON."""
    results = await get_lineage_service().trace(uid, max_depth=max_depth)
    return graph_to_json(build_lineage_graph(results))


@router.get("/chain/{uid}", response_model=BusinessChain)
async def chain_uid(uid: str) -> BusinessChain:
    """Upstream and downstream lineage of ``uid``."""
    return await get_lineage_service().chain(uid)


# ===== Legacy UID Mappings =====

@router.post("/uid-mappings", response_model=UidMapping)
async def upsert_uid_mapping(request: UidMappingRequest) -> UidMapping:
    """Create or re-point a legacy id -> UID mapping."""
    if not (request.old_id and request.uid):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="oldId and uid are required",
        )
    return await get_uid_mappings().upsert(request.old_id, request.uid, request.entity_type)


@router.get("/uid-mappings", response_model=list[UidMapping])
async def list_uid_mappings(
    old_id: Optional[str] = Query(default=None, alias="oldId"),
    entity_type: Optional[str] = Query(default=None, alias="entityType"),
) -> list[UidMapping]:
    """Mappings for one legacy id and/or an entity type."""
    store = get_uid_mappings()
    if old_id:
        mapping = await store.get(old_id)
        if mapping is None or (entity_type and mapping.entity_type != entity_type):
            return []
        return [mapping]
    return await store.list_mappings(entity_type=entity_type)
