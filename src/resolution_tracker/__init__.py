"""Resolution tracker: mirrors working group resolutions and triages them into the bug tracker."""
