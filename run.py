from pool_tracker import create_app, db
from pool_tracker.models import DeclaredPodium, Match, MatchPick, Prediction, ScoringRun

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Match": Match,
        "Prediction": Prediction,
        "MatchPick": MatchPick,
        "DeclaredPodium": DeclaredPodium,
        "ScoringRun": ScoringRun,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
