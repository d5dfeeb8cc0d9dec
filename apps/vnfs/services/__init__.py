"""
apps.vnfs.services package.
"""
from .definition_service import (  # noqa: F401
    create_definition,
    delete_definition,
    get_definition,
    list_definitions,
    update_definition,
)
from .upload_service import UploadResult, handle_upload, ingest_document  # noqa: F401
from .vnf_service import (  # noqa: F401
    delete_instance,
    get_form_fields,
    get_instance,
    get_yaml_config,
    list_instances,
    search_instances,
)
