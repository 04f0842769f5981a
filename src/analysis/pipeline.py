"""
Stage orchestration for the wind-perpendicular terrain analysis.

Stages are declared as a small DAG and executed in dependency order for one
AnalysisRequest. Each stage reads the outputs of the stages it depends on
from a shared per-run state dict and adds its own. Every run recomputes from
scratch; nothing is cached between triggers.

Example:
    from src.analysis.pipeline import WindPerpendicularityPipeline

    pipeline = WindPerpendicularityPipeline(elevation_source, wind_archive)

    # Show execution plan
    pipeline.explain("report")

    result = pipeline.run(request)
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from src.analysis.report import AnalysisResult
from src.analysis.request import AnalysisRequest
from src.errors import SupersededError
from src.scoring.masking import apply_mask
from src.scoring.perpendicularity import score_perpendicularity
from src.terrain.data_loading import ElevationSource
from src.terrain.features import compute_slope_aspect
from src.terrain.raster import Raster
from src.wind.archive import WindArchive
from src.wind.compositor import composite_wind
from src.wind.direction import resample_to_grid, wind_bearing

logger = logging.getLogger(__name__)

FINAL_STAGE = "report"


class WindPerpendicularityPipeline:
    """
    Runs the analysis stages for a request.

    Stages (see explain() for the resolved order):
    - composite_wind: Mean u/v over [start, end)
    - wind_direction: Bearing raster from the mean vectors
    - load_elevation: DEM clipped to the region
    - terrain_features: Horn slope and aspect
    - mean_bearing: Region-mean bearing on the DEM grid
    - score: |cos(aspect - perp)| * slope
    - mask: Rate or threshold mask over the region
    - report: Min/max of the masked raster and the AnalysisResult
    """

    def __init__(
        self,
        elevation_source: ElevationSource,
        wind_archive: WindArchive,
        *,
        verbose: bool = True,
    ):
        """
        Initialize the pipeline.

        Args:
            elevation_source: Provider of the DEM
            wind_archive: Provider of hourly u/v wind steps
            verbose: Log stage progress
        """
        self.elevation_source = elevation_source
        self.wind_archive = wind_archive
        self.verbose = verbose

        self._task_graph = {
            "composite_wind": {
                "depends_on": [],
                "description": "Average hourly u/v wind over the date range",
            },
            "wind_direction": {
                "depends_on": ["composite_wind"],
                "description": "Convert mean wind vectors to compass bearings",
            },
            "load_elevation": {
                "depends_on": [],
                "description": "Load the DEM clipped to the region",
            },
            "terrain_features": {
                "depends_on": ["load_elevation"],
                "description": "Compute Horn slope and aspect",
            },
            "mean_bearing": {
                "depends_on": ["wind_direction", "load_elevation"],
                "description": "Reduce the wind bearing over the region",
            },
            "score": {
                "depends_on": ["terrain_features", "mean_bearing"],
                "description": "Score slope by alignment with the perpendicular bearing",
            },
            "mask": {
                "depends_on": ["score"],
                "description": "Mask the score by rate or threshold",
            },
            "report": {
                "depends_on": ["mask"],
                "description": "Reduce the masked score and build the result",
            },
        }

    def _log(self, msg: str, *args):
        """Log message if verbose with lazy formatting."""
        if self.verbose:
            logger.info(msg, *args)

    @staticmethod
    def _checkpoint(cancel_event: Optional[threading.Event], stage: str):
        if cancel_event is not None and cancel_event.is_set():
            raise SupersededError(f"Run superseded before {stage}")

    def run(
        self,
        request: AnalysisRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """
        Run every stage for a request, dependencies first.

        Args:
            request: Validated analysis parameters (a region is required)
            cancel_event: Checked before each stage; when set the run stops
                with SupersededError

        Returns:
            AnalysisResult with generation 0 (sessions stamp their own)

        Raises:
            RegionRequiredError: If the request has no region
            ComputationError: If any stage cannot produce a result
        """
        state: Dict[str, Any] = {"request": request, "region": request.require_region()}
        order = self._compute_execution_order(FINAL_STAGE)

        for step, task in enumerate(order, 1):
            self._checkpoint(cancel_event, task)
            self._log("[%d/%d] %s", step, len(order), self._task_graph[task]["description"])
            getattr(self, f"_stage_{task}")(state)

        return state[FINAL_STAGE]

    # ===== Stages =====

    def _stage_composite_wind(self, state: Dict[str, Any]):
        request = state["request"]
        state["composite_wind"] = composite_wind(
            self.wind_archive, request.start, request.end, state["region"]
        )

    def _stage_wind_direction(self, state: Dict[str, Any]):
        state["wind_direction"] = wind_bearing(state["composite_wind"])

    def _stage_load_elevation(self, state: Dict[str, Any]):
        elevation = self.elevation_source.load(state["region"])
        self._log("      DEM shape: %s", elevation.shape)
        state["load_elevation"] = elevation

    def _stage_terrain_features(self, state: Dict[str, Any]):
        state["terrain_features"] = compute_slope_aspect(state["load_elevation"])

    def _stage_mean_bearing(self, state: Dict[str, Any]):
        request, region = state["request"], state["region"]
        bearing_on_dem = region.clip(resample_to_grid(state["wind_direction"], state["load_elevation"]))
        stats = request.reduction(request.wind_scale).reduce(bearing_on_dem, region, ("mean",))
        self._log("      Mean bearing %.1f at %.0f m", stats.get("mean"), stats.effective_scale)
        state["bearing_on_dem"] = bearing_on_dem
        state["mean_bearing"] = stats

    def _stage_score(self, state: Dict[str, Any]):
        slope, aspect = state["terrain_features"]
        state["score"] = score_perpendicularity(
            aspect,
            slope,
            state["mean_bearing"].get("mean"),
            wind_support=state["bearing_on_dem"],
        )

    def _stage_mask(self, state: Dict[str, Any]):
        request = state["request"]
        state["mask"] = apply_mask(
            state["score"].highlighted,
            request.mask,
            state["region"],
            scale=request.score_scale,
            best_effort=request.best_effort,
            max_pixels=request.max_pixels,
        )

    def _stage_report(self, state: Dict[str, Any]):
        request, region = state["request"], state["region"]
        mask, score = state["mask"], state["score"]
        slope, aspect = state["terrain_features"]
        masked_stats = request.reduction(request.score_scale).reduce(mask.masked, region, ("minmax",))

        state["report"] = AnalysisResult(
            mean_bearing=score.mean_bearing,
            perp_bearing=score.perp_bearing,
            scored_min=mask.stats.get("min"),
            scored_max=mask.stats.get("max"),
            cutoff=mask.cutoff,
            mask_policy=request.mask,
            masked=mask.masked,
            layers={
                "elevation": state["load_elevation"],
                "wind_direction": state["bearing_on_dem"],
                "slope": slope,
                "aspect": aspect,
                "alignment": score.alignment,
                "highlighted": score.highlighted,
            },
            reductions={
                "wind": state["mean_bearing"],
                "highlighted": mask.stats,
                "masked": masked_stats,
            },
            wind_steps=state["composite_wind"].step_count,
        )

    def overview(self, request: AnalysisRequest) -> Dict[str, Raster]:
        """
        Elevation and wind direction layers without analysis.

        Used before a region is drawn; both layers cover the request's region
        when it has one and the whole dataset otherwise.
        """
        field = composite_wind(self.wind_archive, request.start, request.end, request.region)
        return {
            "elevation": self.elevation_source.load(request.region),
            "wind_direction": wind_bearing(field),
        }

    # ===== Public API =====

    def explain(self, task_name: str = FINAL_STAGE) -> List[str]:
        """
        Print the stages that run to produce task_name, in execution order.

        Returns:
            Task names in execution order (empty for an unknown task)
        """
        if task_name not in self._task_graph:
            print(f"\nUnknown task: {task_name}")
            print(f"Available tasks: {', '.join(self._task_graph)}")
            return []

        order = self._compute_execution_order(task_name)
        print("\n" + "=" * 70)
        print(f"Execution Plan for: {task_name} ({len(order)} stages)")
        print("=" * 70)
        for step, task in enumerate(order, 1):
            info = self._task_graph[task]
            after = ", ".join(info["depends_on"]) or "-"
            print(f"  {step}. {task:<18} after: {after}")
            print(f"     {info['description']}")
        return order

    def _compute_execution_order(self, task_name: str) -> List[str]:
        """Dependencies-first ordering of task_name and everything it needs."""
        order: List[str] = []

        def add(task: str):
            if task in order:
                return
            for dep in self._task_graph[task]["depends_on"]:
                add(dep)
            order.append(task)

        add(task_name)
        return order
