from fastapi import APIRouter, Depends, status
from typing import List

from researchflow.api.deps import get_collection_service, get_current_user
from researchflow.schemas.collection import (
    CollectionRequest,
    CollectionRead,
    CollectionPaperRequest,
    CollectionPapers,
    CollectionStats,
)
from researchflow.schemas.user import UserRead
from researchflow.services.collection_service import CollectionService

router = APIRouter()


@router.post("", response_model=CollectionRead, status_code=status.HTTP_201_CREATED)
async def create_collection(
    collection: CollectionRequest,
    user: UserRead = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service),
):
    '''Create a new collection'''
    return collection_service.create(
        user.id, collection.name, collection.description, collection.is_public
    )


@router.get("", response_model=List[CollectionRead])
async def list_collections(
    user: UserRead = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service),
):
    '''List the current user's collections'''
    return collection_service.list_for_user(user.id)


@router.get("/{collection_id}", response_model=CollectionRead)
async def get_collection(
    collection_id: int,
    user: UserRead = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service),
):
    '''Get a specific collection'''
    return collection_service.get_visible(user.id, collection_id)


@router.get("/{collection_id}/stats", response_model=CollectionStats)
async def get_collection_stats(
    collection_id: int,
    user: UserRead = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service),
):
    '''Get collection statistics'''
    papers = collection_service.papers(user.id, collection_id)

    return CollectionStats(
        collection_id=collection_id,
        total_papers=len(papers.paper_ids),
    )


@router.post("/{collection_id}/papers", response_model=CollectionPapers)
async def add_paper(
    collection_id: int,
    paper: CollectionPaperRequest,
    user: UserRead = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service),
):
    '''Add a paper to a collection owned by the current user'''
    return collection_service.add_paper(user.id, collection_id, paper.paper_id)


@router.get("/{collection_id}/papers", response_model=CollectionPapers)
async def list_papers(
    collection_id: int,
    user: UserRead = Depends(get_current_user),
    collection_service: CollectionService = Depends(get_collection_service),
):
    '''List the paper ids in a collection'''
    return collection_service.papers(user.id, collection_id)
