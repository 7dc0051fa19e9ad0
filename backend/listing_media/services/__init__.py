"""Services: image pipeline, storage backends, logging and media orchestration."""
