import copy

from designflow.core.errors import UpstreamError
from designflow.schemas import CanvasDocument
from designflow.services.ai import (
    AIAssistant,
    AnalysisResult,
    CodeBundle,
    ExtractionResult,
    GeneratedFile,
    RefinementResult,
)

SAMPLE_CANVAS = {
    "version": "5.3.0",
    "objects": [
        {"type": "rect", "left": 0, "top": 0, "width": 400, "height": 80, "fill": "#f5f5f5", "rx": 4},
        {"type": "textbox", "left": 16, "top": 24, "width": 200, "text": "Sign in", "fontSize": 18, "fill": "#222222"},
    ],
    "background": "#ffffff",
}


def recolor(design, fill):
    out = copy.deepcopy(design)
    for obj in out["objects"]:
        if obj["type"] == "rect":
            obj["fill"] = fill
    return out


OPTIMIZED_CANVAS = recolor(SAMPLE_CANVAS, "#1e40af")
REFINED_CANVAS = recolor(SAMPLE_CANVAS, "#047857")


class FakeAssistant(AIAssistant):
    """Deterministic stand-in for the AI service; records every call."""

    def __init__(self):
        self.calls = []
        self.fail_with = None
        self.score = 82

    def _called(self, name, *args):
        self.calls.append((name, args))
        if self.fail_with is not None:
            raise self.fail_with

    def extract(self, image_b64, media_type):
        self._called("extract", image_b64, media_type)
        return ExtractionResult(
            canvas_data=CanvasDocument.model_validate(SAMPLE_CANVAS),
            confidence=0.9,
            metadata={"elementCount": 2},
        )

    def analyze(self, design):
        self._called("analyze", design)
        return AnalysisResult(
            quality_score=self.score,
            categories={"layout": 80, "color": 70},
            suggestions=[{"id": "s1", "category": "color", "title": "Raise contrast"}],
            analysis="Header contrast is low.",
            optimized_design=CanvasDocument.model_validate(OPTIMIZED_CANVAS),
        )

    def refine(self, original, current, feedback, category):
        self._called("refine", original, current, feedback, category)
        return RefinementResult(
            refined_design=CanvasDocument.model_validate(REFINED_CANVAS),
            changes=["Header fill set to green"],
            explanation=f"Addressed {category} feedback",
        )

    def generate_code(self, design, project_name, page_name, options):
        self._called("generate_code", design, project_name, page_name, options)
        return CodeBundle(
            files=[GeneratedFile(path="app/page.tsx", content="export default function Page() { return null }", language="tsx")],
            instructions=f"{options.framework}: npm install && npm run dev",
        )

    def run_design_tests(self, design):
        self._called("run_design_tests", design)
        return {"tests": [{"id": "t1", "name": "Contrast", "status": "passed", "type": "accessibility"}]}

    def generate_docs(self, design, page_name, project_name):
        self._called("generate_docs", design, page_name, project_name)
        return {"sections": [{"title": "Overview", "content": f"# {page_name}", "category": "general", "items": []}]}

    def chat(self, message, context):
        self._called("chat", message, context)
        return f"Try a larger heading. ({context.get('element_count')} elements)"

    def names(self):
        return [name for name, _ in self.calls]


class BrokenAssistant(FakeAssistant):
    def __init__(self, error=None):
        super().__init__()
        self.fail_with = error or UpstreamError()
