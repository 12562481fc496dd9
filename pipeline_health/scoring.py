import json
import csv
from pathlib import Path
from typing import List, Dict, Optional
from datetime import date, datetime

from .config import HEALTH_LABELS, READINESS_FIELDS
from .calculator import round_half_up
from .schemas import HealthSummary, PipelineHealthScore


def summarize_scores(scores: List[PipelineHealthScore]) -> HealthSummary:
    """Average health and label distribution, as shown on the dashboard"""
    label_counts = {label: 0 for label in HEALTH_LABELS}
    for score in scores:
        label_counts[score.label] += 1

    average = round_half_up(sum(s.score for s in scores) / len(scores)) if scores else 0

    return HealthSummary(
        total_accounts=len(scores),
        average_score=average,
        label_counts=label_counts,
    )


class OutputGenerator:
    def __init__(self, account_names: Optional[Dict[str, str]] = None):
        self.account_names = account_names or {}

    def account_name(self, account_id: str) -> str:
        return self.account_names.get(account_id) or account_id

    def generate_json_output(self, results: List[PipelineHealthScore], output_path: Path):
        output_data = [result.model_dump(mode='json', by_alias=True) for result in results]

        with open(output_path, 'w') as f:
            json.dump(output_data, f, indent=2, default=self._json_serializer)

    def generate_csv_output(self, results: List[PipelineHealthScore], output_path: Path):
        if not results:
            return

        flag_names = list(READINESS_FIELDS)

        with open(output_path, 'w', newline='') as f:
            writer = csv.writer(f)

            writer.writerow([
                'account_id', 'account_name', 'score', 'label',
                'coverage', 'quality', 'recency', 'task_progress',
                *flag_names,
                'last_updated_at'
            ])

            for result in results:
                flags = result.readiness_flags.model_dump()
                writer.writerow([
                    result.account_id,
                    self.account_name(result.account_id),
                    result.score,
                    result.label,
                    f"{result.breakdown.coverage:.3f}",
                    f"{result.breakdown.quality:.3f}",
                    f"{result.breakdown.recency:.3f}",
                    f"{result.breakdown.task_progress:.3f}",
                    *[flags[name] for name in flag_names],
                    result.last_updated_at.isoformat()
                ])

    def generate_leaderboard(self, results: List[PipelineHealthScore], output_path: Path):
        if not results:
            return

        summary = summarize_scores(results)
        ranked = sorted(results, key=lambda r: r.score, reverse=True)

        markdown_content = f"""# Pipeline Health Leaderboard

## Summary Statistics
- **Total Accounts**: {summary.total_accounts}
- **Average Health**: {summary.average_score}%

## Label Distribution
- **Healthy**: {summary.label_counts['Healthy']} accounts
- **Watchlist**: {summary.label_counts['Watchlist']} accounts
- **At Risk**: {summary.label_counts['At Risk']} accounts

## Ranked Results

| Rank | Account | Score | Label | Coverage | Quality | Recency | Tasks | Ready |
|------|---------|-------|-------|----------|---------|---------|-------|-------|
"""

        for i, result in enumerate(ranked, 1):
            b = result.breakdown
            ready = sum(1 for v in result.readiness_flags.model_dump().values() if v)
            markdown_content += f"| {i} | {self.account_name(result.account_id)} | **{result.score}** | {result.label} | {b.coverage:.2f} | {b.quality:.2f} | {b.recency:.2f} | {b.task_progress:.2f} | {ready}/{len(READINESS_FIELDS)} |\n"

        markdown_content += """

## Readiness Detail

"""

        for result in ranked:
            markdown_content += f"### {self.account_name(result.account_id)} ({result.score} - {result.label})\n\n"
            flags = result.readiness_flags.model_dump()
            for flag_name, field_name in READINESS_FIELDS.items():
                mark = "x" if flags[flag_name] else " "
                markdown_content += f"- [{mark}] {field_name}\n"
            markdown_content += "\n---\n\n"

        with open(output_path, 'w') as f:
            f.write(markdown_content)

    def _json_serializer(self, obj):
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
