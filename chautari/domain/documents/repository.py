"""Document repository - Database operations for request documents"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Document, ESignature


class DocumentRepository:
    """Repository for document database operations"""

    @staticmethod
    def get_request_documents(db: Session, request_id: str) -> list[Document]:
        return (
            db.query(Document)
            .filter(Document.request_id == request_id)
            .order_by(Document.created_at.desc())
            .all()
        )

    @staticmethod
    def get_document(db: Session, document_id: str) -> Optional[Document]:
        return db.query(Document).filter(Document.id == document_id).first()

    @staticmethod
    def create_document(db: Session, **fields) -> Document:
        document = Document(**fields)
        db.add(document)
        db.commit()
        db.refresh(document)
        return document

    @staticmethod
    def add_signature(db: Session, **fields) -> ESignature:
        """Stage an e-signature row (caller commits)"""
        signature = ESignature(**fields)
        db.add(signature)
        return signature

    @staticmethod
    def delete_document(db: Session, document: Document) -> None:
        db.delete(document)
        db.commit()
