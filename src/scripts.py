"""CLI scripts for development and operations."""
import sys
import json
import uvicorn
import requests

BASE_URL = "http://localhost:8000"


def dev_server():
    """Run development server with auto-reload."""
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )


def _create_backfill_task(athlete_id: int, base_url: str = BASE_URL) -> int:
    url = f"{base_url}/api/v1/tasks"
    payload = {
        "athlete_id": athlete_id,
        "task_type": "route_backfill",
        "parameters": {}
    }

    print(f"Creating route backfill task for athlete {athlete_id} at {url}...")
    response = requests.post(url, json=payload, timeout=30)

    if response.status_code != 201:
        print(f"Failed to create task (status {response.status_code}): {response.text}")
        return 1

    data = response.json()
    print(f"Task created: {data['task_id']}")
    print(f"Status: {data['status']}")
    print(f"Check status with: backfill-routes get {data['task_id']}")
    return 0


def _show_task(task_id: str, base_url: str = BASE_URL) -> int:
    url = f"{base_url}/api/v1/tasks/{task_id}"
    response = requests.get(url, timeout=30)

    if response.status_code == 404:
        print(f"Task {task_id} not found")
        return 1
    if response.status_code != 200:
        print(f"Failed to get task status (status {response.status_code}): {response.text}")
        return 1

    data = response.json()
    print(f"Task ID:  {data['task_id']}")
    print(f"Status:   {data['status']}")
    print(f"Progress: {data['progress'] * 100:.1f}%")
    if data.get('duration_seconds'):
        print(f"Duration: {data['duration_seconds']:.2f}s")

    if data.get('error'):
        print(f"Error: {data['error']}")
    elif data.get('result'):
        print(json.dumps(data['result'], indent=2))
    return 0


def backfill_routes():
    """Start or inspect a route backfill task through the API."""
    usage = (
        "Usage:\n"
        "  backfill-routes create <athlete_id>   # Assign routes to all stored activities\n"
        "  backfill-routes get <task_id>         # Show task status"
    )

    if len(sys.argv) < 3:
        print(usage)
        sys.exit(1)

    command, argument = sys.argv[1], sys.argv[2]

    try:
        if command == "create":
            exit_code = _create_backfill_task(int(argument))
        elif command == "get":
            exit_code = _show_task(argument)
        else:
            print(f"Unknown command: {command}")
            print(usage)
            exit_code = 1
    except requests.exceptions.ConnectionError:
        print(f"Could not connect to {BASE_URL}")
        print("Make sure the server is running (use 'dev')")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    dev_server()
