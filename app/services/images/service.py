from sqlalchemy.orm import Session

from app.delivery.models import ImageRecord, SetGate
from app.models.content_set import ContentSet
from app.models.image import Image


class ImageService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, image_id: str) -> Image | None:
        return self.db.query(Image).filter(Image.id == image_id).one_or_none()

    def get_record(self, image_id: str) -> ImageRecord | None:
        """Image + its set gate as one read-only record for the delivery resolver."""
        row = (
            self.db.query(Image, ContentSet)
            .join(ContentSet, ContentSet.id == Image.set_id)
            .filter(Image.id == image_id)
            .one_or_none()
        )
        if row is None:
            return None
        image, content_set = row
        return ImageRecord(
            image_id=image.id,
            object_key=image.object_key,
            watermarked_object_key=image.watermarked_object_key,
            set_id=image.set_id,
            filename=image.filename,
            gate=SetGate(
                set_id=content_set.id,
                published_at=content_set.published_at,
                scheduled_time=content_set.scheduled_time,
                min_tier=content_set.min_tier,
            ),
        )

    def list_for_regeneration(self, set_id: str | None = None, offset: int = 0, limit: int = 100) -> list[Image]:
        q = self.db.query(Image)
        if set_id:
            q = q.filter(Image.set_id == set_id)
        return q.order_by(Image.created_at.asc(), Image.id.asc()).offset(offset).limit(limit).all()

    def set_watermarked_key(self, image_id: str, key: str | None) -> None:
        self.db.query(Image).filter(Image.id == image_id).update(
            {Image.watermarked_object_key: key}, synchronize_session=False
        )
        self.db.commit()
