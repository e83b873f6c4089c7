"""
Quiz CLI Commands

Quiz evaluation: evaluate, results
"""
import asyncio
from typing import Optional

from quizeval.config import settings
from quizeval.exceptions import QuizNotFoundError, EvaluationFailedError


class QuizCommand:
    """Quiz CLI command handler."""

    def __init__(self, dry_run: bool = False, database_url: Optional[str] = None):
        self.dry_run = dry_run
        self.database_url = database_url or settings.DATABASE_URL

    def execute(self, args) -> int:
        """Execute quiz command."""
        if args.command == "evaluate":
            return self._evaluate(args)
        elif args.command == "results":
            return self._results(args)
        else:
            print("Error: Unknown quiz action")
            return 1

    def _evaluate(self, args) -> int:
        """Evaluate a quiz."""
        quiz_id = args.quiz_id

        print(f"=== Evaluate Quiz {quiz_id} ===")

        if self.dry_run:
            print(f"[DRY RUN] Would evaluate quiz {quiz_id}")
            return 0

        try:
            asyncio.run(self._async_evaluate(quiz_id, timeout=args.timeout))
            return 0
        except QuizNotFoundError as e:
            print(f"✗ {e.message}")
            return 2
        except EvaluationFailedError as e:
            print(f"✗ Evaluation failed: {e.message}")
            return 1

    async def _async_evaluate(self, quiz_id: int, timeout: Optional[float] = None) -> None:
        """Async evaluate quiz."""
        from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
        from quizeval.database import build_engine
        from quizeval.services.evaluation_service import evaluate_quiz_isolated

        engine = build_engine(self.database_url)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        try:
            outcome = await evaluate_quiz_isolated(
                quiz_id,
                session_factory=session_factory,
                timeout_seconds=timeout
            )
        finally:
            await engine.dispose()

        print(f"✓ Quiz {quiz_id} evaluated")
        print(f"  Evaluated at: {outcome.evaluated_at.isoformat()}")
        print(f"  Students: {outcome.students_evaluated}")
        print(f"  Attempts: {outcome.attempts_evaluated}")

    def _results(self, args) -> int:
        """Show quiz results."""
        quiz_id = args.quiz_id

        print(f"=== Quiz {quiz_id} Results ===")

        try:
            asyncio.run(self._async_results(quiz_id))
            return 0
        except QuizNotFoundError as e:
            print(f"✗ {e.message}")
            return 2

    async def _async_results(self, quiz_id: int) -> None:
        """Async get quiz results."""
        from sqlalchemy.ext.asyncio import AsyncSession
        from quizeval.database import build_engine
        from quizeval.services.performance_query_service import get_quiz_summary

        engine = build_engine(self.database_url)

        try:
            async with AsyncSession(engine) as session:
                summary = await get_quiz_summary(quiz_id, session)
        finally:
            await engine.dispose()

        if not summary["is_evaluated"]:
            print("Quiz not yet evaluated")
            return

        print(f"\n{summary['title']}")
        print(f"Evaluated at: {summary['evaluated_at']}")
        print(f"Questions: {summary['question_count']}  Total marks: {summary['total_marks']}")
        print(f"Students: {summary['total_students']}  Average mark: {summary['avg_mark']}")

        if not summary["students"]:
            print("No attempts found")
            return

        print(f"\n{'Rank':<6} {'Student':<10} {'Score':<8} {'Answered':<8}")
        print("-" * 35)
        for row in summary["students"]:
            print(f"{row['rank']:<6} {row['student_id']:<10} {row['score']:<8} {row['questions_attempted']:<8}")

        if summary["topics"]:
            print(f"\n{'Topic':<30} {'Avg score':<10} {'Accuracy':<10}")
            print("-" * 52)
            for row in summary["topics"]:
                print(f"{row['name'][:28]:<30} {row['avg_score']:<10} {row['avg_accuracy']:<10}")
