"""Delta configuration."""

from pydantic import BaseModel


class DeltaConfig(BaseModel):
    """Behaviour switches shared by delta construction and patching."""

    strict_coercion: bool = False       # pydantic strict mode for slot coercion
    log_skipped_fields: bool = True     # DEBUG records for skipped keys / fields
