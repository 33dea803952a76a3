import argparse
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.main import run_migrations, wait_for_db
from app.option_types import options_from_json
from app.services import question_service, submission_service


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a demo form, submit answers, rename a label and print stats")
    parser.add_argument("--labels", nargs="+", default=["Red", "Blue", "Green"])
    parser.add_argument("--answer", type=str, default="Red")
    parser.add_argument("--rename-to", type=str, default="Crimson")
    parser.add_argument("--actor", type=str, default="seed-demo")
    parser.add_argument("--skip-migrations", action="store_true")
    args = parser.parse_args()

    if not args.skip_migrations:
        wait_for_db()
        run_migrations()

    question = question_service.create_question(
        question_text="Pick a colour",
        question_type="select",
        options=args.labels,
    )
    options = options_from_json(question.get("options"))
    print(f"Question {question['id']} options:")
    for o in options:
        print(f"- {o.key} => {o.label}")

    form = submission_service.create_form(
        title="Option demo",
        questions=[{"question_id": question["id"], "required": True}],
    )
    by_label = submission_service.create_submission(form["id"], {question["id"]: args.answer})
    by_key = submission_service.create_submission(form["id"], {question["id"]: options[-1].key})
    print(f"Submission {by_label['id']} stored: {by_label['raw_data']}")
    print(f"Submission {by_key['id']} stored: {by_key['raw_data']}")

    target = next(o for o in options if o.label == args.answer or o.key == args.answer)
    mutation = question_service.rename_option(
        question["id"],
        target.key,
        args.rename_to,
        actor=args.actor,
        reason="seed demo rename",
    )
    print(f"Renamed {target.key}: {mutation.entry.old_label!r} -> {mutation.entry.new_label!r}")

    reread = submission_service.get_submission(by_label["id"])
    print(f"Submission {reread['id']} now displays: {reread['submission_data']}")

    stats = submission_service.get_submission_stats(form["id"])
    print("Stats:")
    print(json.dumps(stats, indent=2))


if __name__ == "__main__":
    main()
