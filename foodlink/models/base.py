from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def oid() -> str:
    return str(ObjectId())


class Document(BaseModel):
    """Base for stored records: camelCase on the wire and in MongoDB, ``_id`` as ``id``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: dict):
        data = dict(doc)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_doc(self) -> dict:
        # computed fields are derived on read, never stored
        skip = {"id", *type(self).model_computed_fields}
        doc = self.model_dump(by_alias=True, exclude=skip)
        doc["_id"] = self.id or oid()
        return doc
