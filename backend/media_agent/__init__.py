"""Media agent: task-driven image and video generation worker."""
