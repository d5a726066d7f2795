"""Request schema for the spot import endpoint.

The response body is ``ApiResponse[ImportResult]``; ``ImportResult`` is the
pipeline's own frozen model and is serialized as-is (confidence levels as
lowercase labels).
"""

from pydantic import BaseModel, Field


class SpotImportRequest(BaseModel):
    url: str = Field(
        ...,
        min_length=1,
        max_length=2048,
        description="Any link to a place: map link, review page, pin, post or website",
        examples=["https://maps.google.com/?q=place_id:ChIJdd4hrwug2EcRmSrV3Vo6llI"],
    )
