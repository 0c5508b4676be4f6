# Quoting/diagram.py
import re
import unicodedata
from typing import Dict, Iterable, List, Optional

TECH_OPTIONS = {
    "azure": "Azure Data Factory",
    "databricks": "Azure Databricks",
    "synapse": "Azure Synapse",
    "snowflake": "Snowflake",
    "fabric": "Microsoft Fabric",
    "powerbi": "Power BI",
    "tableau": "Tableau",
    "python": "Python/Airflow",
}


def build_architecture_diagram(
    tech_stack: Iterable[str] = (),
    criticality_enabled: bool = False,
    ds_models_count: int = 0,
) -> str:
    """
    Diagramme Mermaid (graph TD) de l'architecture proposée :
    sources -> ingesta -> lakehouse -> BI -> usuarios, plus gouvernance,
    ML et stack technique selon les paramètres du devis.
    """
    tech_stack = list(tech_stack or [])

    nodes = [
        "Source[Fuentes]",
        "Pipe[Ingesta]",
        "Store[Lakehouse]",
        "Vis[Power BI]",
        "User((Usuario))",
    ]
    flow = [
        "Source --> Pipe",
        "Pipe --> Store",
        "Store --> Vis",
        "Vis --> User",
    ]

    if criticality_enabled:
        nodes.append("Gov[Gobierno/Seguridad]")
        flow.append("Gov -.-> Store")

    if "databricks" in tech_stack or ds_models_count > 0:
        nodes.append("Process[Databricks ML]")
        flow.extend(["Store --> Process", "Process --> Store"])

    names = [TECH_OPTIONS[t] for t in tech_stack if t in TECH_OPTIONS]
    if names:
        nodes.append(f"Tech[Stack: {'<br/>'.join(names)}]")
        flow.append("Tech -.- Store")

    lines = ["graph TD"]
    lines += [f"    {n}" for n in nodes]
    lines += [f"    {f}" for f in flow]
    lines += [
        "    classDef highlight stroke:#F5CB5C,stroke-width:2px;",
        "    class Pipe,Store,Vis highlight",
    ]
    return "\n".join(lines) + "\n"


# ---------- Éditeur par consigne ----------

# mot-clé -> (id, libellé, forme, style)
TOOL_MAP = {
    "ingesta": ("Ingesta", "Ingesta de Datos", "trapezoid", None),
    "databricks": ("DB", "Azure Databricks", None, "fill:#F5CB5C,stroke:#333,color:#000"),
    "power bi": ("PBI", "Power BI", None, "fill:#F2C811,stroke:#333,color:#000"),
    "powerbi": ("PBI", "Power BI", None, "fill:#F2C811,stroke:#333,color:#000"),
    "sql": ("SQL", "Azure SQL", "cylinder", None),
    "sql azure": ("SQL", "Azure SQL", "cylinder", None),
    "synapse": ("Synapse", "Azure Synapse", None, None),
    "factory": ("ADF", "Data Factory", None, None),
    "adf": ("ADF", "Data Factory", None, None),
    "fabric": ("Fabric", "Microsoft Fabric", None, None),
    "power apps": ("PApps", "Power Apps", None, "fill:#A680FF,stroke:#333,color:#fff"),
    "powerapps": ("PApps", "Power Apps", None, "fill:#A680FF,stroke:#333,color:#fff"),
    "lake": ("Lake", "Data Lake", "cylinder", None),
    "storage": ("Lake", "Data Lake", "cylinder", None),
    "excel": ("Excel", "Excel File", None, None),
    "csv": ("CSV", "CSV File", None, None),
    "api": ("API", "API Rest", None, None),
    "sap": ("SAP", "SAP ERP", None, None),
}
# "power bi" doit passer avant "power", "sql azure" avant "sql"
_KEYS_BY_LENGTH = sorted(TOOL_MAP, key=len, reverse=True)

SEQUENCE_WORDS = ("luego", "despues", "entonces", "a continuacion", "finalmente", "y de ahi", "and then")
_STEP_SPLIT_RE = re.compile(r"->|\b(?:" + "|".join(SEQUENCE_WORDS) + r")\b")
_FIRST_BRANCH_RE = re.compile(r"\b1\.")
_BRANCH_SPLIT_RE = re.compile(r"\b\d+\.")

DESIGN_TRIGGERS = ("diseña", "crea", "haz", "flujo", "arquitectura", "diagrama")
APPEND_TRIGGERS = ("agrega", "add")
_LABEL_UNSAFE = str.maketrans("", "", "[](){}")
_APPENDED_ID_RE = re.compile(r"\bNode_(\d+)")

PROMPT_HEADER = (
    "graph TD",
    "    classDef default fill:#242423,stroke:#CFDBD5,stroke-width:2px,color:#E8EDDF;",
    "    classDef highlight fill:#F5CB5C,stroke:#333,stroke-width:2px,color:#000;",
    "    linkStyle default stroke:#CFDBD5,stroke-width:2px;",
)


def _fold(text: str) -> str:
    """Minuscules sans accents : "Después" -> "despues"."""
    decomposed = unicodedata.normalize("NFKD", (text or "").lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _node_definition(node_id: str, label: str, shape: Optional[str]) -> str:
    if shape == "cylinder":
        return f"{node_id}[({label})]"
    if shape == "trapezoid":
        return f"{node_id}[/{label}\\]"
    return f"{node_id}[{label}]"


class FlowParser:
    """
    Transforme une consigne en langage naturel en graphe Mermaid.

    Les étapes sont séparées par les mots de séquence (luego, despues, ->...) ;
    chaque étape devient le premier outil reconnu (clé la plus longue).
    Une liste numérotée "1. ... 2. ..." ouvre des branches qui repartent
    toutes du dernier nœud du tronc.
    """

    def __init__(self, prompt: str):
        self.prompt = _fold(prompt)
        self.nodes: Dict[str, str] = {}
        self.edges: List[str] = []
        self.styles: Dict[str, str] = {}
        self.last_nodes: List[str] = []

    def parse(self) -> str:
        first = _FIRST_BRANCH_RE.search(self.prompt)
        if first is None:
            self._sequence(self.prompt)
            return self.compile()

        self._sequence(self.prompt[:first.start()])
        trunk_ends = list(self.last_nodes)
        ends: List[str] = []
        for segment in _BRANCH_SPLIT_RE.split(self.prompt[first.start():]):
            if not segment.strip():
                continue
            self.last_nodes = list(trunk_ends)
            self._sequence(segment)
            ends.extend(self.last_nodes)
        self.last_nodes = ends
        return self.compile()

    def _sequence(self, text: str) -> None:
        for step in _STEP_SPLIT_RE.split(text):
            if len(step.strip()) > 2:
                self._step(step)

    def _step(self, text: str) -> None:
        key = next((k for k in _KEYS_BY_LENGTH if k in text), None)
        if key is None:
            return
        node_id, label, shape, style = TOOL_MAP[key]
        self.nodes[node_id] = _node_definition(node_id, label, shape)
        if style:
            self.styles[node_id] = f"style {node_id} {style}"
        for prev in self.last_nodes:
            edge = f"{prev} --> {node_id}"
            if prev != node_id and edge not in self.edges:
                self.edges.append(edge)
        self.last_nodes = [node_id]

    def compile(self) -> str:
        body = list(self.nodes.values()) + self.edges + list(self.styles.values())
        return "\n".join(list(PROMPT_HEADER) + [f"    {line}" for line in body]) + "\n"


def update_diagram_from_prompt(current_code: str, prompt: str) -> str:
    """
    Consigne de conception (diseña, crea, flujo...) : nouveau graphe.
    Consigne d'ajout (agrega, add) : un nœud est ajouté au graphe courant.
    Sinon, ou si rien n'est reconnu, le code courant est renvoyé tel quel.
    """
    lowered = (prompt or "").lower()
    if any(t in lowered for t in DESIGN_TRIGGERS):
        parser = FlowParser(prompt)
        code = parser.parse()
        return code if parser.nodes else current_code

    words = (prompt or "").split()
    position = next((i for i, w in enumerate(words) if w.lower() in APPEND_TRIGGERS), None)
    if position is not None:
        label = " ".join(words[position + 1:]).strip(" .").translate(_LABEL_UNSAFE) or "Nodo"
        code = (current_code or "graph TD").rstrip("\n")
        taken = [int(n) for n in _APPENDED_ID_RE.findall(code)]
        node_id = f"Node_{max(taken, default=0) + 1}"
        return f"{code}\n    {node_id}[{label}]\n"
    return current_code
