"""Label and annotation keys shared with the orchestration layer.

These keys are part of the persisted state contract. Changing any of them
orphans existing composite resources.
"""

SYN_TOOLS_BASE = "service.syn.tools"

# Annotations
DESCRIPTION_ANNOTATION = f"{SYN_TOOLS_BASE}/description"
METADATA_ANNOTATION = f"{SYN_TOOLS_BASE}/metadata"
DELETION_TIMESTAMP_ANNOTATION = f"{SYN_TOOLS_BASE}/deletionTimestamp"

# Labels
SERVICE_NAME_LABEL = f"{SYN_TOOLS_BASE}/name"
SERVICE_ID_LABEL = f"{SYN_TOOLS_BASE}/id"
PLAN_NAME_LABEL = f"{SYN_TOOLS_BASE}/plan"
INSTANCE_ID_LABEL = f"{SYN_TOOLS_BASE}/instance"
PARENT_ID_LABEL = f"{SYN_TOOLS_BASE}/parent"
BINDABLE_LABEL = f"{SYN_TOOLS_BASE}/bindable"
DELETED_LABEL = f"{SYN_TOOLS_BASE}/deleted"
CLUSTER_LABEL = f"{SYN_TOOLS_BASE}/cluster"
SLA_LABEL = f"{SYN_TOOLS_BASE}/sla"

# Labels copied from a plan onto every instance it creates
PLAN_LABELS_COPIED_TO_INSTANCE = (
    SERVICE_ID_LABEL,
    SERVICE_NAME_LABEL,
    PLAN_NAME_LABEL,
    CLUSTER_LABEL,
    SLA_LABEL,
)

# Parameters
INSTANCE_PARAMETERS_PATH = ("spec", "parameters")
PARENT_REFERENCE_PARAMETER = "parent_reference"
