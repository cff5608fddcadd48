"""Teams Bot API - activity handling, actions, planner and adaptive cards."""
