"""In-repo default taxonomy: the skeleton every stored config is merged onto."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from models_config import (
    CURRENT_SCHEMA_VERSION,
    AppConfig,
    BrandOption,
    ConfigSection,
    GlobalBrand,
    utc_now_iso,
)

# (id, name, synonyms) or (id, name, synonyms, extra fields)
BrandRow = Tuple[Any, ...]


ERP_BRANDS: List[BrandRow] = [
    ("sap", "SAP", ["SAP ERP", "SAP ECC", "SAP S/4HANA"]),
    ("oracle_ebs", "Oracle E-Business Suite", ["Oracle EBS", "E-Business Suite"]),
    ("oracle_fusion", "Oracle Fusion Cloud", ["Oracle Cloud ERP", "Fusion"]),
    ("microsoft_dynamics", "Microsoft Dynamics 365", ["Dynamics 365", "D365"]),
    ("netsuite", "NetSuite", ["Oracle NetSuite"]),
    ("infor_ln", "Infor LN", ["LN"]),
    ("infor_m3", "Infor M3", ["M3"]),
    ("epicor", "Epicor", ["Epicor ERP"]),
    ("ifs", "IFS", ["IFS Applications"]),
    ("sage", "Sage", ["Sage ERP"]),
    ("syspro", "SYSPRO", []),
    ("jd_edwards", "JD Edwards", ["JDE", "EnterpriseOne"]),
    ("workday", "Workday", []),
]

SENSOR_CATEGORIES: List[Tuple[str, str, str, List[BrandRow]]] = [
    ("iot_sensors", "IoT Sensors", "General purpose IoT sensors for temperature, pressure, vibration", [
        ("ifm", "IFM", ["IFM Electronic"]),
        ("banner", "Banner Engineering", ["Banner"]),
        ("fluke", "Fluke", ["Fluke Corporation"]),
        ("flir", "FLIR", ["Teledyne FLIR"]),
        ("honeywell_sensors", "Honeywell", []),
        ("siemens_sensors", "Siemens", []),
        ("rockwell_sensors", "Rockwell/Allen-Bradley", ["Allen-Bradley", "AB"]),
    ]),
    ("smart_meters", "Smart Meters", "Energy and utility monitoring equipment", [
        ("schneider_meters", "Schneider Electric", ["Schneider PowerLogic"]),
        ("siemens_meters", "Siemens", ["Siemens Energy"]),
        ("ge_grid", "GE Grid Solutions", ["GE Digital Energy"]),
    ]),
    ("condition_monitoring", "Condition Monitoring", "Predictive maintenance and asset health sensors", [
        ("emerson_ams", "Emerson AMS", ["AMS Suite"]),
        ("skf", "SKF", ["SKF Condition Monitoring"]),
        ("bentley_nevada", "Bentley Nevada", []),
        ("assetwatch", "AssetWatch", []),
        ("augury", "Augury", []),
        ("machinemetrics", "MachineMetrics", []),
        ("waites", "WAITES", []),
    ]),
]

AUTOMATION_CATEGORIES: List[Tuple[str, str, str, List[BrandRow]]] = [
    ("scada", "SCADA Systems", "Supervisory Control and Data Acquisition systems", [
        ("aveva_wonderware", "AVEVA/Wonderware", ["Wonderware", "System Platform"]),
        ("ignition", "Ignition", ["Inductive Automation"],
         {"categories": ["automation.scada", "data_analytics.historians"]}),
        ("ge_ifix", "GE iFIX", ["iFIX"]),
        ("siemens_wincc", "Siemens WinCC", ["WinCC"]),
        ("rockwell_factorytalk", "Rockwell FactoryTalk", ["FactoryTalk View"]),
        ("schneider_ecostruxure", "Schneider EcoStruxure", ["EcoStruxure"]),
        ("abb_scada", "ABB", ["ABB Ability"]),
    ]),
    ("plc", "PLC Systems", "Programmable Logic Controllers", [
        ("siemens_s7", "Siemens S7", ["TIA Portal", "STEP 7"]),
        ("allen_bradley_controllogix", "Allen-Bradley ControlLogix", ["ControlLogix", "RSLogix"]),
        ("schneider_modicon", "Schneider Modicon", ["Modicon", "Unity Pro"]),
        ("omron_plc", "Omron", ["Omron PLC"]),
        ("beckhoff", "Beckhoff", ["TwinCAT"]),
    ]),
    ("dcs", "DCS (Distributed Control Systems)", "Process control and automation systems", [
        ("emerson_deltav", "Emerson DeltaV", ["DeltaV"]),
        ("honeywell_experion", "Honeywell Experion", ["Experion PKS"]),
        ("yokogawa_centum", "Yokogawa CENTUM", ["CENTUM VP"]),
        ("abb_800xa", "ABB System 800xA", ["800xA"]),
    ]),
    ("mes", "MES (Manufacturing Execution Systems)", "Production and manufacturing execution", [
        ("siemens_opcenter", "Siemens Opcenter", ["Opcenter"]),
        ("rockwell_plex", "Rockwell Plex", ["Plex Systems"]),
        ("tulip_mes", "Tulip", ["Tulip Interfaces"]),
        ("aveva_mes", "AVEVA MES", []),
    ]),
]

DATA_ANALYTICS_CATEGORIES: List[Tuple[str, str, str, List[BrandRow]]] = [
    ("warehouse_lakehouse", "Data Warehouse / Lakehouse", "Cloud data platforms for analytics and reporting", [
        ("snowflake", "Snowflake", ["Snowflake Cloud"]),
        ("bigquery", "Google BigQuery", ["BigQuery"]),
        ("redshift", "Amazon Redshift", ["AWS Redshift"]),
        ("azure_synapse", "Azure Synapse Analytics", ["Synapse", "Azure SQL DW"]),
        ("databricks", "Databricks Lakehouse", ["Databricks"]),
    ]),
    ("historians", "Historians / Time-Series", "Industrial data historians and time-series platforms", [
        ("aveva_pi", "AVEVA PI System", ["PI System", "OSIsoft PI", "AVEVA PI"],
         {"categories": ["data_analytics.historians", "automation.scada"]}),
        ("proficy_historian", "GE Proficy Historian", ["Proficy Historian"]),
        ("canary_historian", "Canary Historian", ["Canary Labs"]),
        ("ignition_historian", "Ignition Tag Historian", ["Ignition Historian"],
         {"categories": ["data_analytics.historians", "automation.scada"]}),
        ("aspen_ip21", "AspenTech InfoPlus.21", ["InfoPlus.21", "Aspen IP.21"]),
    ]),
    ("streaming", "Streaming & Eventing", "Real-time data streaming and event platforms", [
        ("kafka_confluent", "Apache Kafka / Confluent", ["Kafka", "Confluent Platform"]),
        ("aws_kinesis", "Amazon Kinesis", ["AWS Kinesis"]),
        ("azure_event_hubs", "Azure Event Hubs", ["Event Hubs"]),
    ]),
    ("bi", "BI / Visualization", "Business intelligence and data visualization tools", [
        ("power_bi", "Power BI", ["Microsoft Power BI"]),
        ("tableau", "Tableau", ["Tableau Desktop", "Tableau Server"]),
        ("grafana", "Grafana", ["Grafana Labs"]),
    ]),
    ("dataops_integration", "DataOps/Integration Platforms",
     "Data operations and integration platforms for insights-driven workflows", [
        ("palantir_foundry", "Palantir Foundry", ["Foundry", "Palantir"],
         {"categories": ["data_analytics.dataops_integration"],
          "meta": {"brandFollowups": {
              "deployment": ["Cloud", "On-premises"],
              "security": ["RBAC", "ABAC", "SSO"],
              "interfaces": ["REST API", "Webhook", "Kafka"],
          }}}),
    ]),
]

CONNECTIVITY_EDGE_BRANDS: List[BrandRow] = [
    ("kepware_kep", "Kepware KEPServerEX", ["KEPServerEX", "Kepware"]),
    ("moxa_gateways", "Moxa Gateways", ["Moxa Industrial"]),
    ("siemens_edge", "Siemens Industrial Edge", ["Industrial Edge"]),
    ("hivemq", "HiveMQ", ["HiveMQ Broker"]),
    ("mosquitto", "Eclipse Mosquitto", ["Mosquitto"]),
    ("aws_iot_core", "AWS IoT Core", ["Amazon IoT Core"]),
    ("azure_iot_hub", "Azure IoT Hub", ["IoT Hub"]),
]

OTHER_SYSTEM_CATEGORIES: List[Tuple[str, str, str, List[BrandRow]]] = [
    ("legacy_cmms", "Legacy CMMS/EAM", "Existing maintenance management systems", [
        ("ibm_maximo", "IBM Maximo", ["Maximo"]),
        ("emaint", "eMaint", ["Fluke eMaint"]),
        ("fiix", "Fiix", ["Rockwell Fiix"]),
        ("upkeep", "UpKeep", []),
    ]),
    ("inventory_warehouse", "Inventory/Warehouse", "Parts management and warehouse systems", [
        ("fishbowl", "Fishbowl", ["Fishbowl Inventory"]),
        ("blue_yonder", "Blue Yonder", ["JDA"]),
        ("kojo", "Kojo (Formerly Agora Systems)", ["Agora Systems", "Kojo Procurement"]),
    ]),
    ("workflow_itsm", "Workflow/ITSM/iPaaS", "Business process and integration platforms", [
        ("servicenow", "ServiceNow", []),
        ("jira", "Jira", ["Atlassian Jira"]),
        ("boomi", "Boomi", ["Dell Boomi"]),
        ("mulesoft", "MuleSoft", []),
    ]),
]

DEFAULT_SYNONYMS: Dict[str, str] = {
    "wonderware": "aveva_wonderware",
    "system platform": "aveva_wonderware",
    "agora": "kojo",
    "sap ecc": "sap",
    "palantir foundry": "palantir_foundry",
    "foundry": "palantir_foundry",
    "palantir": "palantir_foundry",
}

DEFAULT_GLOBAL_BRANDS: List[Dict[str, Any]] = [
    {
        "id": "ignition",
        "name": "Ignition",
        "synonyms": ["Inductive Automation"],
        "assigned_sections": ["automation.scada", "data_analytics.historians"],
    },
    {
        "id": "aveva_pi",
        "name": "AVEVA PI System",
        "synonyms": ["PI System", "OSIsoft PI", "AVEVA PI"],
        "assigned_sections": ["data_analytics.historians", "automation.scada"],
    },
    {
        "id": "ignition_historian",
        "name": "Ignition Tag Historian",
        "synonyms": ["Ignition Historian"],
        "assigned_sections": ["data_analytics.historians", "automation.scada"],
    },
    {
        "id": "palantir_foundry",
        "name": "Palantir Foundry",
        "synonyms": ["Foundry", "Palantir"],
        "assigned_sections": ["data_analytics.dataops_integration"],
    },
]

DEFAULT_RESULT_COPY: Dict[str, Any] = {
    "headers": {"architecture": "Your Custom MaintainX Integration Architecture"},
    "perBrand": {
        "defaultTemplate": "MaintainX integrates with {brand} via {protocol} to sync {objects} ({directionality}, {frequency}).",
        "historians": "MaintainX listens to {interfaces} from {historian} to attach readings to assets and trigger PM/PdM.",
        "connectivity_edge": "MaintainX integrates via {gateway} using {protocols}; {security}; topology {deployment}.",
    },
}


def _brand(row: BrandRow) -> BrandOption:
    extra: Dict[str, Any] = row[3] if len(row) > 3 else {}
    return BrandOption(id=row[0], name=row[1], synonyms=list(row[2]), state="active", **extra)


def _section(
    section_id: str,
    label: str,
    description: str,
    *,
    multi: bool = True,
    brands: Sequence[BrandRow] = (),
    subcategories: Optional[Sequence[Tuple[str, str, str, List[BrandRow]]]] = None,
) -> ConfigSection:
    return ConfigSection(
        id=section_id,
        label=label,
        description=description,
        multi=multi,
        options=[_brand(row) for row in brands],
        subcategories=[
            _section(sub_id, sub_label, sub_desc, brands=rows)
            for sub_id, sub_label, sub_desc, rows in subcategories
        ] if subcategories is not None else None,
    )


def default_sections() -> List[ConfigSection]:
    return [
        _section("erp", "ERP Systems", "Select your current ERP system", multi=False, brands=ERP_BRANDS),
        _section("sensors_monitoring", "Sensors & Monitoring", "Select your sensors and monitoring systems",
                 subcategories=SENSOR_CATEGORIES),
        _section("automation", "Automation & SCADA", "Select your automation and SCADA systems",
                 subcategories=AUTOMATION_CATEGORIES),
        _section("data_analytics", "Data & Analytics", "Data platforms, historians, and analytics systems",
                 subcategories=DATA_ANALYTICS_CATEGORIES),
        _section("connectivity_edge", "Connectivity & Edge", "Industrial gateways, brokers, and protocol bridges",
                 brands=CONNECTIVITY_EDGE_BRANDS),
        _section("other_systems", "Other Systems", "Select your other systems",
                 subcategories=OTHER_SYSTEM_CATEGORIES),
    ]


def create_default_config() -> AppConfig:
    """Fresh current-schema config built from the static catalogs above."""
    return AppConfig(
        schema_version=CURRENT_SCHEMA_VERSION,
        status="published",
        updated_at=utc_now_iso(),
        sections=default_sections(),
        synonym_map=dict(DEFAULT_SYNONYMS),
        global_brands=[GlobalBrand(**row) for row in DEFAULT_GLOBAL_BRANDS],
        cross_listing_enabled=True,
        result_copy={k: (dict(v) if isinstance(v, dict) else v) for k, v in DEFAULT_RESULT_COPY.items()},
    )
