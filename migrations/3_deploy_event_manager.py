def migrate(deployer):
    event_manager = deployer.artifacts.require("EventManager")
    user_account = deployer.artifacts.require("UserAccount")
    deployer.deploy(event_manager, user_account)
