def migrate(deployer):
    user_account = deployer.artifacts.require("UserAccount")
    deployer.deploy(user_account)
