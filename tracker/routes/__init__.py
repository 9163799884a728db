"""HTTP routes for the task tracker."""
