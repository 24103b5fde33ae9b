from .burndown import CommandBurndownRepository, CommandResult


def register_commands(app, orchestrator_factory):
    """
    Registers all slash commands with the provided app instance.
    """
    repository = CommandBurndownRepository(orchestrator_factory)

    @app.command("/burndown")
    def handle_burndown_command(ack, body, say, client, logger):
        ack()
        text = body.get("text", "").strip()
        say(f"Generating burndown chart... :hourglass_flowing_sand: `{text}`")

        result = repository.execute(text)
        if not result.ok or result.image_path is None:
            say(result.message)
            return

        channel_id = body.get("channel_id")
        if not channel_id:
            say("channel_id is missing from the Slack request")
            return
        try:
            client.files_upload_v2(
                channel=channel_id,
                file=str(result.image_path),
                filename=result.image_path.name,
                title="Burndown Chart",
                initial_comment=result.message,
            )
        except Exception as e:
            logger.error(f"files_upload_v2 failed: {e}")
            say(f"Failed to upload chart: {e}")


__all__ = ["register_commands", "CommandBurndownRepository", "CommandResult"]
