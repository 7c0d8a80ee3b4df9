"""
Task Catalog
============

Static per-task-type attributes: estimated effort, notification lead time,
preferred hour of day, display strings and the care description for every
(task type, growth stage) pair.
"""

from __future__ import annotations

from dataclasses import dataclass

from growcare.enums import GrowthStage, Priority, TaskType


@dataclass(frozen=True)
class TaskTypeProfile:
    """Fixed attributes of one task type."""

    task_type: TaskType
    title_verb: str
    icon: str
    estimated_minutes: int
    lead_minutes: int
    care_hour: int
    # Only used for task types without a strain-specific frequency.
    base_frequency_days: int | None = None

    def title_for(self, plant_name: str) -> str:
        return f"{self.title_verb} {plant_name}"


TASK_TYPE_PROFILES: dict[TaskType, TaskTypeProfile] = {
    TaskType.WATERING: TaskTypeProfile(TaskType.WATERING, "Water", "💧", 15, 15, 18),
    TaskType.FEEDING: TaskTypeProfile(TaskType.FEEDING, "Feed", "🧪", 30, 30, 18),
    TaskType.INSPECTION: TaskTypeProfile(TaskType.INSPECTION, "Inspect", "🔍", 10, 10, 10),
    TaskType.PRUNING: TaskTypeProfile(TaskType.PRUNING, "Prune", "✂️", 45, 45, 9, 14),
    TaskType.TRAINING: TaskTypeProfile(TaskType.TRAINING, "Train", "🪴", 30, 30, 9, 7),
    TaskType.DEFOLIATION: TaskTypeProfile(TaskType.DEFOLIATION, "Defoliate", "🍃", 60, 45, 9, 21),
    TaskType.FLUSHING: TaskTypeProfile(TaskType.FLUSHING, "Flush", "🚿", 20, 60, 18, 14),
    TaskType.HARVEST: TaskTypeProfile(TaskType.HARVEST, "Harvest", "🧺", 240, 120, 7, 70),
    TaskType.TRANSPLANT: TaskTypeProfile(TaskType.TRANSPLANT, "Transplant", "🏺", 90, 180, 17, 30),
}

DEFAULT_TASK_ICON = "🌱"

# Critical watering and feeding move to the morning slot.
CRITICAL_CARE_HOUR = 8

PRIORITY_LEAD_MULTIPLIERS: dict[Priority, float] = {
    Priority.LOW: 0.5,
    Priority.MEDIUM: 1.0,
    Priority.HIGH: 1.5,
    Priority.CRITICAL: 2.0,
}

PRIORITY_ICONS: dict[Priority, str] = {
    Priority.LOW: "🌱",
    Priority.MEDIUM: "⚠️",
    Priority.HIGH: "🚨",
    Priority.CRITICAL: "🔴",
}

_G, _S, _V, _PF, _F, _LF, _H, _C = (
    GrowthStage.GERMINATION,
    GrowthStage.SEEDLING,
    GrowthStage.VEGETATIVE,
    GrowthStage.PRE_FLOWER,
    GrowthStage.FLOWERING,
    GrowthStage.LATE_FLOWERING,
    GrowthStage.HARVEST,
    GrowthStage.CURING,
)

TASK_DESCRIPTIONS: dict[TaskType, dict[GrowthStage, str]] = {
    TaskType.WATERING: {
        _G: "Maintain consistent moisture for germination. Use spray bottle for gentle watering when top soil feels dry.",
        _S: "Water when top inch of soil is dry. Avoid overwatering young roots and seedlings.",
        _V: "Water thoroughly when top 2-3 inches of soil are dry. Check drainage and increase frequency as plant grows.",
        _PF: "Maintain consistent watering schedule. Monitor for increased water needs and signs of over/under watering.",
        _F: "Water when soil is dry 2-3 inches down but avoid getting buds wet. Check soil moisture daily.",
        _LF: "Reduce watering frequency. Allow soil to dry more between waterings.",
        _H: "Stop watering 2-3 days before harvest to stress plant and concentrate flavors/resin production.",
        _C: "No watering needed during curing process.",
    },
    TaskType.FEEDING: {
        _G: "No feeding required during germination. Seed contains all necessary nutrients for initial growth.",
        _S: "Begin light feeding with quarter-strength nutrients after first true leaves appear.",
        _V: "Increase to full-strength nitrogen-rich nutrients. Feed every 2-3 waterings following feeding schedule.",
        _PF: "Transition to bloom nutrients. Reduce nitrogen, increase phosphorus and potassium.",
        _F: "Use full bloom nutrient schedule. Monitor for nutrient burn or deficiencies.",
        _LF: "Begin flushing with plain water 1-2 weeks before harvest. Reduce feeding frequency.",
        _H: "Stop feeding. Focus on flushing remaining nutrients to improve flavor and quality.",
        _C: "No feeding needed during curing process.",
    },
    TaskType.INSPECTION: {
        _G: "Daily visual inspection for sprouting progress and proper moisture levels.",
        _S: "Daily inspection for healthy growth, proper lighting, pest signs, and diseases.",
        _V: "Inspect every 2-3 days for pests, nutrient issues, overall plant health, and training opportunities.",
        _PF: "Daily inspection for sex determination, pre-flowers, and early flowering signs. Monitor for stretch.",
        _F: "Daily inspection for bud development, pest issues, mold, and environmental problems.",
        _LF: "Inspect daily for harvest readiness - trichome color, pistil changes, and bud density.",
        _H: "Final inspection before harvest. Check trichome development and optimal harvest timing.",
        _C: "Weekly inspection of curing jars for proper humidity levels and mold prevention.",
    },
    TaskType.PRUNING: {
        _G: "No pruning needed during germination.",
        _S: "Remove any yellow or damaged leaves. Minimal pruning only - focus on healthy growth.",
        _V: "Begin topping and training. Prune lower branches and fan leaves to improve airflow and light penetration.",
        _PF: "Final pruning before flowering. Light pruning to shape plant and remove lower growth that won't receive light.",
        _F: "Minimal pruning - only remove dead, diseased, or yellowing material.",
        _LF: "No pruning during late flowering. Focus on harvest preparation.",
        _H: "Harvest pruning - remove fan leaves and trim buds.",
        _C: "Final trim if needed during curing process.",
    },
    TaskType.TRAINING: {
        _G: "No training during germination.",
        _S: "Begin gentle LST (Low Stress Training) when plant has 3-4 nodes.",
        _V: "Intensive training period - topping, LST, SCROG setup.",
        _PF: "Final training adjustments before flowering stretch begins.",
        _F: "Minimal training - only gentle adjustments during early flowering.",
        _LF: "No training during late flowering.",
        _H: "Remove training equipment before harvest.",
        _C: "No training needed during curing.",
    },
    TaskType.DEFOLIATION: {
        _G: "No defoliation during germination.",
        _S: "No defoliation during seedling stage.",
        _V: "Light defoliation to improve airflow and light penetration.",
        _PF: "Major defoliation session before flowering to open up canopy.",
        _F: "Selective defoliation during early flowering (day 21 and 42).",
        _LF: "Minimal defoliation - only remove dead or yellowing leaves.",
        _H: "Remove all fan leaves during harvest.",
        _C: "No defoliation needed during curing.",
    },
    TaskType.FLUSHING: {
        _G: "No flushing during germination.",
        _S: "No flushing during seedling stage.",
        _V: "Flush only if showing nutrient toxicity signs.",
        _PF: "Flush before switching to bloom nutrients if transitioning from synthetic nutrients.",
        _F: "Begin final flush 1-2 weeks before harvest with plain pH-balanced water.",
        _LF: "Continue flushing process. Monitor runoff PPM levels.",
        _H: "Complete final flush to improve flavor and quality. Plants ready when runoff PPM is <50.",
        _C: "No flushing needed during curing.",
    },
    TaskType.HARVEST: {
        _G: "Not applicable during germination.",
        _S: "Not applicable during seedling stage.",
        _V: "Not applicable during vegetative stage.",
        _PF: "Not applicable during pre-flower stage.",
        _F: "Monitor for harvest readiness - check trichomes weekly.",
        _LF: "Prepare for harvest. Final checks on trichome development.",
        _H: "Execute harvest when trichomes are mostly cloudy with some amber.",
        _C: "Not applicable during curing.",
    },
    TaskType.TRANSPLANT: {
        _G: "Transplant seedlings to larger containers when true leaves appear.",
        _S: "Transplant to final container size when roots fill current container.",
        _V: "Final transplant to largest container before flowering begins.",
        _PF: "Avoid transplanting during pre-flower - stress can affect flowering.",
        _F: "Avoid transplanting during flowering - causes stress and yield loss.",
        _LF: "No transplanting during late flowering.",
        _H: "No transplanting during harvest.",
        _C: "No transplanting during curing.",
    },
}


def describe_task(task_type: TaskType, stage: GrowthStage) -> str:
    return TASK_DESCRIPTIONS[task_type][stage]


def task_icon(task_type: TaskType | str) -> str:
    try:
        return TASK_TYPE_PROFILES[TaskType(task_type)].icon
    except (KeyError, ValueError):
        return DEFAULT_TASK_ICON


def lead_time_minutes(task_type: TaskType, priority: Priority) -> int:
    """Minutes before the due time at which the reminder should fire."""
    base = TASK_TYPE_PROFILES[task_type].lead_minutes
    return int(base * PRIORITY_LEAD_MULTIPLIERS[priority] + 0.5)


def care_hour(task_type: TaskType, priority: Priority) -> int:
    """Preferred hour of day for a reminder of this task type."""
    if priority == Priority.CRITICAL and task_type in (TaskType.WATERING, TaskType.FEEDING):
        return CRITICAL_CARE_HOUR
    return TASK_TYPE_PROFILES[task_type].care_hour


def catalog_problems() -> list[str]:
    """Describe every gap in the task catalog tables."""
    problems: list[str] = []
    for task_type in TaskType:
        if task_type not in TASK_TYPE_PROFILES:
            problems.append(f"missing task profile: {task_type}")
        stages = TASK_DESCRIPTIONS.get(task_type, {})
        missing = [s.value for s in GrowthStage if s not in stages]
        if missing:
            problems.append(f"{task_type}: missing descriptions for {missing}")
    for priority in Priority:
        if priority not in PRIORITY_LEAD_MULTIPLIERS:
            problems.append(f"missing lead multiplier: {priority}")
        if priority not in PRIORITY_ICONS:
            problems.append(f"missing priority icon: {priority}")
    return problems
