# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer: connection pooling and the blood request repository.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Iterable
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

from ..domain.history import DEFAULT_HISTORY_LIMIT
from ..models.enums import ACTIVE_STATUSES, RequestStatus

logger = logging.getLogger(__name__)

BLOOD_REQUESTS_COLLECTION = "blood-requests"


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, limit: int):
        self.items = items
        self.total = total
        self.page = page
        self.limit = limit
        self.total_pages = (total + limit - 1) // limit
        self.has_next = page < self.total_pages
        self.has_prev = page > 1

    def to_meta(self) -> Dict[str, Any]:
        """Pagination metadata for the response envelope."""
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev
        }


class MongoDBService:
    """MongoDB connection holder with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/blood-donation'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'blood-donation')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    # Index Management

    def create_indexes(self) -> None:
        """Create lookup indexes used by the pairing checks and listings."""
        try:
            logger.info("Creating MongoDB indexes...")

            requests = self.get_collection(BLOOD_REQUESTS_COLLECTION)
            requests.create_index([("donor.email", ASCENDING), ("status.current", ASCENDING)])
            requests.create_index([("requester.email", ASCENDING), ("status.current", ASCENDING)])
            requests.create_index([("status.current", ASCENDING), ("createdAt", DESCENDING)])
            requests.create_index("donationStatus")
            requests.create_index("donationInfo.bloodGroup")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


class BloodRequestRepository:
    """Blood request persistence with atomic single-document writes."""

    def __init__(self, mongodb_service: MongoDBService, collection_name: str = BLOOD_REQUESTS_COLLECTION):
        self.mongodb_service = mongodb_service
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        return self.mongodb_service.get_collection(self.collection_name)

    @staticmethod
    def _validate_object_id(doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    @staticmethod
    def _serialize(document: Optional[Dict]) -> Optional[Dict]:
        """Replace the ObjectId ``_id`` with a string ``id``."""
        if document is None:
            return None
        document = dict(document)
        if "_id" in document:
            document["id"] = str(document.pop("_id"))
        return document

    def _exclude(self, query: Dict, exclude_id: Optional[str]) -> Dict:
        if exclude_id:
            query["_id"] = {"$ne": self._validate_object_id(exclude_id)}
        return query

    def insert(self, document: Dict) -> str:
        """Insert a new blood request and return its id."""
        try:
            document = dict(document)
            document.pop("id", None)
            result = self.collection.insert_one(document)
            logger.info(f"Created document in {self.collection_name}: {result.inserted_id}")
            return str(result.inserted_id)
        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {self.collection_name}: {e}")
            raise ValueError("Document with this identifier already exists")

    def find_by_id(self, request_id: str) -> Optional[Dict]:
        """Find a blood request by id."""
        object_id = self._validate_object_id(request_id)
        document = self.collection.find_one({"_id": object_id})
        if document is None:
            logger.debug(f"Document {request_id} not found in {self.collection_name}")
        return self._serialize(document)

    def find_active_pairing(
        self,
        requester_email: str,
        donor_email: str,
        exclude_id: Optional[str] = None
    ) -> Optional[Dict]:
        """Find a pending or in-progress request for this requester/donor pair."""
        query = self._exclude({
            "requester.email": requester_email,
            "donor.email": donor_email,
            "status.current": {"$in": [status.value for status in ACTIVE_STATUSES]}
        }, exclude_id)
        return self._serialize(self.collection.find_one(query))

    def find_in_progress_for_donor(
        self,
        donor_email: str,
        exclude_id: Optional[str] = None
    ) -> Optional[Dict]:
        """Find an in-progress request naming this donor."""
        query = self._exclude({
            "donor.email": donor_email,
            "status.current": RequestStatus.IN_PROGRESS.value
        }, exclude_id)
        return self._serialize(self.collection.find_one(query))

    def apply_update(
        self,
        request_id: str,
        set_fields: Dict[str, Any],
        history_entry: Optional[Dict[str, Any]] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Optional[Dict]:
        """
        Apply field changes and an optional history entry in one atomic write.

        The write is conditioned only on the document still existing.

        Returns:
            The updated document, or None if it no longer exists
        """
        object_id = self._validate_object_id(request_id)
        update: Dict[str, Any] = {"$set": set_fields}
        if history_entry is not None:
            update["$push"] = {
                "status.history": {
                    "$each": [history_entry],
                    "$slice": -history_limit
                }
            }

        document = self.collection.find_one_and_update(
            {"_id": object_id},
            update,
            return_document=ReturnDocument.AFTER
        )
        if document is None:
            logger.warning(f"No document updated for {request_id} in {self.collection_name}")
        else:
            logger.info(f"Updated document {request_id} in {self.collection_name}")
        return self._serialize(document)

    def delete(self, request_id: str, allowed_statuses: Iterable[str]) -> bool:
        """Delete a request if it is still in one of ``allowed_statuses``."""
        object_id = self._validate_object_id(request_id)
        result = self.collection.delete_one({
            "_id": object_id,
            "status.current": {"$in": [RequestStatus(status).value for status in allowed_statuses]}
        })
        if result.deleted_count > 0:
            logger.warning(f"Deleted document {request_id} in {self.collection_name}")
            return True
        logger.warning(f"No document deleted for {request_id} in {self.collection_name}")
        return False

    def paginate(
        self,
        query: Dict,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: int = DESCENDING
    ) -> PaginationResult:
        """Paginate blood requests with sorting and filtering."""
        skip = (page - 1) * limit
        total = self.collection.count_documents(query)

        # _id breaks ties so pages are stable
        cursor = (
            self.collection.find(query)
            .sort([(sort_by, sort_order), ("_id", sort_order)])
            .skip(skip)
            .limit(limit)
        )
        documents = [self._serialize(doc) for doc in cursor]

        logger.debug(f"Paginated {len(documents)} documents from {self.collection_name} (page {page})")
        return PaginationResult(documents, total, page, limit)


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
