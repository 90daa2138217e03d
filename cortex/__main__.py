from cortex.main import main

main()
