"""Tests de l'éditeur de diagramme par consigne."""

from Quoting.diagram import FlowParser, update_diagram_from_prompt


def body_lines(code):
    return [line.strip() for line in code.splitlines()[4:]]


class TestFlowParser:
    def test_linear_sequence(self):
        code = FlowParser("Ingesta desde SAP, luego Databricks y finalmente Power BI").parse()
        assert code.startswith("graph TD\n    classDef default")
        assert body_lines(code) == [
            "Ingesta[/Ingesta de Datos\\]",
            "DB[Azure Databricks]",
            "PBI[Power BI]",
            "Ingesta --> DB",
            "DB --> PBI",
            "style DB fill:#F5CB5C,stroke:#333,color:#000",
            "style PBI fill:#F2C811,stroke:#333,color:#000",
        ]

    def test_accents_and_arrows(self):
        code = FlowParser("csv -> lake, después synapse").parse()
        assert "CSV --> Lake" in code
        assert "Lake --> Synapse" in code
        assert "Lake[(Data Lake)]" in code

    def test_longest_keyword_wins(self):
        code = FlowParser("excel luego sql azure").parse()
        assert "SQL[(Azure SQL)]" in code
        assert "Excel --> SQL" in code

    def test_numbered_branches_start_from_trunk(self):
        parser = FlowParser("api luego databricks 1. power bi 2. power apps")
        code = parser.parse()
        assert "DB --> PBI" in code
        assert "DB --> PApps" in code
        assert "PBI --> PApps" not in code
        assert parser.last_nodes == ["PBI", "PApps"]

    def test_no_self_loop_or_duplicate(self):
        code = FlowParser("lake luego storage luego lake").parse()
        assert "Lake --> Lake" not in code
        assert body_lines(code) == ["Lake[(Data Lake)]"]


class TestUpdateFromPrompt:
    CURRENT = "graph TD\n    A[Origen] --> B[Destino]\n"

    def test_design_prompt_replaces_graph(self):
        code = update_diagram_from_prompt(self.CURRENT, "Diseña un flujo: ADF luego Fabric")
        assert "A[Origen]" not in code
        assert "ADF --> Fabric" in code

    def test_design_prompt_without_tools_keeps_graph(self):
        assert update_diagram_from_prompt(self.CURRENT, "crea algo bonito") == self.CURRENT

    def test_append_node(self):
        code = update_diagram_from_prompt(self.CURRENT, "agrega Kafka")
        assert code == self.CURRENT + "    Node_1[Kafka]\n"
        code = update_diagram_from_prompt(code, "por favor agrega Event Hub.")
        assert code.endswith("    Node_2[Event Hub]\n")

    def test_append_to_empty_graph(self):
        assert update_diagram_from_prompt("", "add Cache") == "graph TD\n    Node_1[Cache]\n"

    def test_other_prompt_is_noop(self):
        assert update_diagram_from_prompt(self.CURRENT, "cambia los colores") == self.CURRENT
