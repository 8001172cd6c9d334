import requests
import argparse
import json
import sys

# --- Configuration ---
DEFAULT_BASE_URL = "http://localhost:4000"
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_INSIGHTS_TIMEOUT_SECONDS = 120  # AI generation can take a while

# --- API Interaction Functions ---

def post_json(base_url, path, payload, timeout=DEFAULT_TIMEOUT_SECONDS):
    """POSTs a JSON payload and returns the decoded response, or None on failure."""
    url = f"{base_url}{path}"
    try:
        response = requests.post(url, json=payload, timeout=timeout)
        if response.status_code >= 400:
            message = response.json().get("message", response.text)
            print(f"Error from {url} ({response.status_code}): {message}")
            return None
        return response.json()
    except requests.exceptions.RequestException as e:
        print(f"Error during request to {url}: {e}")
        return None
    except json.JSONDecodeError:
        print(f"Error: Could not decode JSON response from {url}. Response text: {response.text}")
        return None


def create_meeting(base_url, meeting):
    result = post_json(base_url, "/api/meetings", meeting)
    if result:
        print(f"Created meeting '{meeting.get('title', meeting['id'])}' ({meeting['id']})")
    return result is not None


def save_questions(base_url, meeting_id, user_id, questions):
    payload = {"meetId": meeting_id, "userId": user_id, "questions": questions}
    result = post_json(base_url, "/api/questions", payload)
    if result:
        print(f"Saved {len(questions)} questions for {meeting_id}/{user_id}")
    return result is not None


def submit_feedback(base_url, meeting_id, entries):
    """Submits every feedback entry, returning how many were accepted."""
    saved = 0
    for entry in entries:
        payload = {"meetingId": meeting_id, "userId": entry["userId"], "responses": entry["responses"]}
        if post_json(base_url, "/api/feedback", payload):
            saved += 1
    print(f"Submitted {saved}/{len(entries)} feedback entries")
    return saved


def generate_insights(base_url, meeting_id, user_id):
    print(f"Requesting insights for meeting {meeting_id}...")
    return post_json(
        base_url,
        "/api/ai-insights/generate",
        {"meetingId": meeting_id, "userId": user_id},
        timeout=DEFAULT_INSIGHTS_TIMEOUT_SECONDS,
    )

# --- Main Execution ---

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Exercise the meeting feedback and AI insights workflow.")
    parser.add_argument("scenario_file", help="Path to a JSON file with 'meeting', 'questions' and 'feedback' keys.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help=f"Base URL of the API (default: {DEFAULT_BASE_URL})")
    parser.add_argument("--skip-setup", action="store_true", help="Only generate insights for an existing meeting")

    args = parser.parse_args()

    # 1. Read scenario file
    try:
        with open(args.scenario_file, 'r', encoding='utf-8') as f:
            scenario = json.load(f)
        meeting = scenario["meeting"]
        print(f"Successfully read scenario file: {args.scenario_file}")
    except FileNotFoundError:
        print(f"Error: Scenario file not found at '{args.scenario_file}'")
        sys.exit(1)
    except (json.JSONDecodeError, KeyError) as e:
        print(f"Error reading scenario file: {e}")
        sys.exit(1)

    meeting_id = meeting["id"]
    owner_id = meeting["createdBy"]

    # 2. Create the meeting, its questions and the feedback
    if not args.skip_setup:
        if not create_meeting(args.base_url, meeting):
            print("Failed to create meeting. Exiting.")
            sys.exit(1)
        save_questions(args.base_url, meeting_id, owner_id, scenario.get("questions", []))
        submit_feedback(args.base_url, meeting_id, scenario.get("feedback", []))

    # 3. Generate insights
    result = generate_insights(args.base_url, meeting_id, owner_id)

    # 4. Display Result
    if result:
        print(f"\n--- Insights ({result['source']}) ---")
        print(json.dumps(result["insights"], indent=2))
        print("\n--- Meeting Recommendations ---")
        for recommendation in result["recommendations"]:
            print(f"- {recommendation}")
        print("------------------------")
    else:
        print("\nFailed to generate insights.")
        sys.exit(1)

    print("Script finished.")
